from typing import Any, Dict, Optional


class GameError(Exception):
    """
    Base class for errors that map onto an HTTP status and an ``{error, details}`` body.
    """

    status_code = 500

    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class SessionNotFoundError(GameError):
    status_code = 404

    def __init__(self, session_id: str) -> None:
        super().__init__("Game session not found")
        self.session_id = session_id


class BadRequestError(GameError):
    status_code = 400


class InvalidHistoryError(BadRequestError):
    """Raised for a goBack payload that cannot be restored; the session is left untouched."""


class UpstreamError(GameError):
    """The LLM provider failed or returned nothing usable."""

    status_code = 500


class UpstreamTimeoutError(UpstreamError):
    """
    The LLM call exceeded its deadline. Nothing was committed for the turn,
    so the client can safely re-submit the same answer.
    """

    status_code = 503

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["retryable"] = True
        return payload
