"""Live directory mirroring with an interactive shell for adding, ending, listing and restoring backups."""

__version__ = "0.1.0"
__all__ = ["__version__"]