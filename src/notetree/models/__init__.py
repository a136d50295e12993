"""Data models for the NoteTree server."""
