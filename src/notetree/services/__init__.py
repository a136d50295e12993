"""Service layer for the NoteTree server."""
