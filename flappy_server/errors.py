from fastapi import status


class GameServerError(Exception):
    """Base class of every error the server turns into a JSON response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class NotFound(GameServerError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class SessionNotFound(NotFound):
    message = "Session not found"


class DepositNotFound(NotFound):
    message = "Deposit not found"


class AlreadyUsed(GameServerError):
    status_code = status.HTTP_410_GONE
    message = "Game already played"


class NoCreditsAvailable(GameServerError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "No credits available"


class InvalidScore(GameServerError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid score"


class UpstreamFailure(GameServerError):
    """An identity provider or payment facilitator answered with a non-2xx status."""

    def __init__(self, upstream_status: int | None, message: str | None = None):
        self.upstream_status = upstream_status
        super().__init__(message or f"Upstream request failed with status {upstream_status}")


class ConfigurationError(Exception):
    """Fatal at startup: the process must not serve requests."""
