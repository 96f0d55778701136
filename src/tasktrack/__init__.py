"""TaskTrack - multi-project task tracker with a guarded workflow engine."""

__version__ = "0.1.0"
