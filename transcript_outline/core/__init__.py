"""Core (UI-free) layers of the transcript outline engine."""
