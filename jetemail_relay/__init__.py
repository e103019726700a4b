"""Relay outgoing mail through JetEmail and check GitHub for plugin updates."""

__all__ = [
    "config",
    "models",
    "mailer",
    "cache",
    "versioning",
    "markdown",
    "release_checker",
    "host",
]
