# backend/errors.py


class VisionaryError(Exception):
    """Base class for errors surfaced by the API handlers."""

    status_code = 500


class NotAuthenticatedError(VisionaryError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated with Google"):
        super().__init__(message)


class AuthExchangeError(VisionaryError):
    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class UpstreamError(VisionaryError):
    """The image generator or a Google API answered with a failure."""


class MalformedLocalStateError(VisionaryError):
    """Persisted client state could not be parsed. Never shown to the user."""
