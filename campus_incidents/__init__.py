"""Local incident capture and storage for the campus app."""
