"""
Application version information.

Version format: MAJOR.MINOR
- MAJOR: Breaking changes (0 while the API is still settling)
- MINOR: Incremented with each merged PR (0.1 → 0.2 → 0.3...)

Version is displayed on server startup and in GET / endpoint.
"""

__version__ = "0.3"
