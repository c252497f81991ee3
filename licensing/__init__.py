"""Business licensing portal - application intake, review and public license verification."""
from licensing.version import __version__

__all__ = ["__version__"]
