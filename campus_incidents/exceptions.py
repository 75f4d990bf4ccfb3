"""Typed failures surfaced to the presentation layer."""


class IncidentError(Exception):
    """Base exception for incident capture and storage."""

    pass


class StorageError(IncidentError):
    """Base exception for incident store failures."""

    pass


class StorageUnavailable(StorageError):
    """The store could not be opened, or was used before ``open()``."""

    pass


class WriteFailed(StorageError):
    """An insert or delete did not commit. Nothing was written."""

    pass


class CaptureError(IncidentError):
    """Base exception for capture validation failures."""

    pass


class IncompleteCapture(CaptureError):
    """Submission attempted before media and location were both attached."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Capture is missing: {', '.join(missing)}")


class InvalidCaptureStep(CaptureError):
    """A capture step was requested out of order."""

    pass


class CaptureInterrupted(IncidentError):
    """
    A collaborator produced no value.

    Not a failure of the app: the coordinator turns these into step
    outcomes and moves its state back instead of forward.
    """

    pass


class LocationDenied(CaptureInterrupted):
    """Location permission refused or the sensor failed."""

    pass


class MediaCancelled(CaptureInterrupted):
    """The user backed out of the media picker."""

    pass
