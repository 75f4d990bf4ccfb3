"""Capture coordinator: assembles one incident before it reaches the store."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import partial
from typing import TypeVar

from campus_incidents.config import get_settings
from campus_incidents.devices import AddressResolver, LocationProvider, MediaPicker
from campus_incidents.exceptions import (
    IncompleteCapture,
    InvalidCaptureStep,
    LocationDenied,
    MediaCancelled,
)
from campus_incidents.schemas.incident import (
    CaptureSnapshot,
    CaptureState,
    Coordinates,
    IncidentCreate,
    StepOutcome,
)
from campus_incidents.services.store import IncidentStore

logger = logging.getLogger(__name__)
settings = get_settings()

T = TypeVar("T")


class CaptureCoordinator:
    """
    Collects media, location and description for one report, then submits it.

    State flow:
    - EMPTY -> MEDIA_ATTACHED when media is picked (cancel keeps EMPTY)
    - MEDIA_ATTACHED -> LOCATION_ATTACHED on a fix, LOCATION_DENIED on refusal
    - LOCATION_ATTACHED -> READY once a description is set
    - READY -> SUBMITTED while the insert runs, then EMPTY once it commits
      (back to the prior state if it fails)
    - any state -> EMPTY on discard

    Nothing is written to the store until media and a coordinate pair are
    both present. A failed insert leaves the capture untouched for a retry.
    """

    def __init__(
        self,
        store: IncidentStore,
        geocoder: AddressResolver | None = None,
        step_timeout: float = settings.capture_step_timeout_seconds,
    ):
        self.store = store
        self.geocoder = geocoder
        self.step_timeout = step_timeout
        self._pending: asyncio.Task | None = None
        self._cancel_requested = False
        self._generation = 0
        self._reset()

    def _reset(self) -> None:
        # Work started for an earlier capture checks this before writing back
        self._generation += 1
        self.state = CaptureState.EMPTY
        self.media_reference: str | None = None
        self.coordinates: Coordinates | None = None
        self.address: str | None = None
        self.title = ""
        self.description = ""

    @property
    def step_in_progress(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def _run_step(self, step: Callable[[], Awaitable[T]]) -> tuple[StepOutcome, T | None]:
        """Run one collaborator call as a cancellable task bounded by the step timeout."""
        if self.step_in_progress:
            raise InvalidCaptureStep("Another capture step is still running")

        self._cancel_requested = False
        task = asyncio.ensure_future(asyncio.wait_for(step(), timeout=self.step_timeout))
        self._pending = task
        try:
            return StepOutcome.OBTAINED, await task
        except asyncio.TimeoutError:
            return StepOutcome.TIMED_OUT, None
        except asyncio.CancelledError:
            # Only our own cancel_pending() is a "no value" outcome
            if not self._cancel_requested:
                raise
            return StepOutcome.CANCELLED, None
        finally:
            self._pending = None
            self._cancel_requested = False

    def cancel_pending(self) -> bool:
        """
        Abort an in-flight media, location or address step.

        Returns:
            True if a step was running and has been cancelled
        """
        if not self.step_in_progress:
            return False
        self._cancel_requested = True
        self._pending.cancel()
        logger.info("Cancelled in-flight capture step")
        return True

    async def attach_media(self, picker: MediaPicker) -> StepOutcome:
        """Ask the picker for a photo or video and attach it to the capture."""
        if self.state is CaptureState.SUBMITTED:
            raise InvalidCaptureStep("Capture is being submitted")

        try:
            outcome, selection = await self._run_step(picker.pick)
        except MediaCancelled:
            outcome, selection = StepOutcome.CANCELLED, None

        if outcome is StepOutcome.OBTAINED and (selection is None or not selection.uri):
            outcome = StepOutcome.CANCELLED

        if outcome is not StepOutcome.OBTAINED:
            logger.info(f"Media step ended without a value: {outcome.value}")
            return outcome

        self.media_reference = selection.uri
        if self.state is CaptureState.EMPTY:
            self.state = CaptureState.MEDIA_ATTACHED
        logger.info(f"Media attached: {selection.uri}")
        return outcome

    async def fetch_location(self, provider: LocationProvider) -> StepOutcome:
        """Take a location fix and, when possible, a display address for it."""
        if self.state in (CaptureState.EMPTY, CaptureState.SUBMITTED):
            raise InvalidCaptureStep("Attach media before fetching the location")

        try:
            outcome, coordinates = await self._run_step(provider.current_position)
        except LocationDenied as e:
            self.coordinates = None
            self.address = None
            self.state = CaptureState.LOCATION_DENIED
            logger.warning(f"Location denied: {e}")
            return StepOutcome.DENIED

        if outcome is not StepOutcome.OBTAINED:
            logger.info(f"Location step ended without a value: {outcome.value}")
            return outcome

        self.coordinates = coordinates
        self.address = None
        self.state = CaptureState.LOCATION_ATTACHED
        if self.geocoder is None:
            return outcome

        generation = self._generation
        address = await self._resolve_address(coordinates)
        if generation != self._generation:
            logger.info("Capture discarded while resolving the address")
            return StepOutcome.CANCELLED
        self.address = address
        return outcome

    async def _resolve_address(self, coordinates: Coordinates) -> str | None:
        """
        Best-effort display address; failures only mean no address.

        Runs as the pending step, so ``cancel_pending()`` and ``discard()``
        abort it like any other step.
        """
        try:
            outcome, address = await self._run_step(partial(self.geocoder.resolve, coordinates))
        except Exception as e:
            logger.warning(f"Reverse geocoding failed, address unavailable: {e}")
            return None

        if outcome is StepOutcome.TIMED_OUT:
            logger.warning("Reverse geocoding timed out, address unavailable")
        return address

    def set_description(self, description: str, title: str | None = None) -> None:
        """Set the free text (may be empty) and, optionally, a title."""
        if self.state is CaptureState.SUBMITTED:
            raise InvalidCaptureStep("Capture is being submitted")
        self.description = description
        if title is not None:
            self.title = title
        if self.state is CaptureState.LOCATION_ATTACHED:
            self.state = CaptureState.READY

    def missing_steps(self) -> list[str]:
        missing = []
        if not self.media_reference:
            missing.append("media")
        if self.coordinates is None:
            missing.append("location")
        return missing

    async def submit(self) -> int:
        """
        Persist the capture and start a fresh one.

        A capture with a location but no description yet counts as ready
        with an empty description.

        Returns:
            The id assigned by the store

        Raises:
            IncompleteCapture: media or location is missing (store untouched)
            WriteFailed: the insert did not commit (capture kept for retry)
            InvalidCaptureStep: a step or another submit is still running
        """
        if self.step_in_progress:
            raise InvalidCaptureStep("Wait for the running capture step to finish")
        if self.state is CaptureState.SUBMITTED:
            raise InvalidCaptureStep("Capture is already being submitted")

        missing = self.missing_steps()
        if missing:
            logger.info(f"Rejected incomplete capture, missing {missing}")
            raise IncompleteCapture(missing)

        record = IncidentCreate(
            media_reference=self.media_reference,
            title=self.title,
            description=self.description,
            latitude=self.coordinates.latitude,
            longitude=self.coordinates.longitude,
        )
        prior_state = self.state
        self.state = CaptureState.SUBMITTED
        insert = asyncio.ensure_future(self.store.insert(record))
        # Settles the capture even if our caller is cancelled mid-insert
        insert.add_done_callback(partial(self._finish_submit, prior_state, self._generation))
        return await asyncio.shield(insert)

    def _finish_submit(
        self, prior_state: CaptureState, generation: int, insert: asyncio.Future
    ) -> None:
        """Reset after a committed insert, or restore the capture for a retry."""
        failed = insert.cancelled() or insert.exception() is not None
        if generation != self._generation:
            return
        if failed:
            self.state = prior_state
            return
        logger.info(f"Capture submitted as incident {insert.result()}")
        self._reset()

    def discard(self) -> None:
        """Drop the in-progress capture, aborting any running step."""
        self.cancel_pending()
        self._reset()
        logger.info("Capture discarded")

    def snapshot(self) -> CaptureSnapshot:
        return CaptureSnapshot(
            state=self.state,
            media_reference=self.media_reference,
            coordinates=self.coordinates,
            address=self.address,
            title=self.title,
            description=self.description,
            missing=self.missing_steps(),
        )
