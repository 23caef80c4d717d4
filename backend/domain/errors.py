"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to HTTP status codes by the global exception handler
in main.py. Services raise them directly; routes never translate them.
"""
from fastapi import HTTPException, status

from domain.constants import GENERIC_FAILURE_MESSAGE


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """Resource not found (404). Never worth retrying."""
    def __init__(self, resource_type: str, identifier: str, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class VenueNotFoundError(NotFoundError):
    """The referenced venue was never seen by the store."""
    def __init__(self, venue_id: int):
        super().__init__("Venue", str(venue_id), details={"venue_id": venue_id})
        self.venue_id = venue_id


class OrderNotFoundError(NotFoundError):
    """The order is gone (deleted) or never belonged to the venue."""
    def __init__(self, order_id: int):
        super().__init__("Order", str(order_id), details={"order_id": order_id})
        self.order_id = order_id
        self.message = (
            "Could not find this order. "
            "It was probably deleted, or the message you used is stale."
        )
        self.detail = self.message


class ParticipantNotFoundError(NotFoundError):
    def __init__(self, participant_id: int):
        super().__init__("Participant", str(participant_id), details={"participant_id": participant_id})


class ValidationError(DomainError):
    """Validation error (400)."""
    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class UnrecognizedActionError(DomainError):
    """Callback data that is not an action token of ours (400)."""
    def __init__(self, data: str):
        super().__init__(
            "Not a recognized action",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"data": data},
        )


class NotPermittedError(DomainError):
    """
    The participant may not perform this action on the order in its current state (403).

    Expected path (stale UI showing outdated buttons), not a system fault.
    """
    def __init__(self, message: str = "You are not permitted to perform this action", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN, details=details)


class VenueResolutionError(DomainError):
    """Base for failures to pick the single venue a private interaction concerns (409)."""
    def __init__(self, message: str, participant_id: int, details: dict | None = None):
        details = {"participant_id": participant_id, **(details or {})}
        super().__init__(message, status_code=status.HTTP_409_CONFLICT, details=details)
        self.participant_id = participant_id


class NotInAnyVenueError(VenueResolutionError):
    def __init__(self, participant_id: int):
        super().__init__(
            "We don't see you in any public chat yet. "
            "Say something in the chat where you want to publish orders, then try again.",
            participant_id,
        )


class MultipleVenuesError(VenueResolutionError):
    def __init__(self, participant_id: int, venue_ids: list[int]):
        super().__init__(
            "You are a member of several public chats. "
            "Use the bot from inside the chat you want to work with.",
            participant_id,
            details={"venue_ids": venue_ids},
        )
        self.venue_ids = venue_ids


class ConflictError(DomainError):
    """Resource conflict (409). Safe to retry."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_409_CONFLICT, details=details)


class StoreError(DomainError):
    """
    Technical storage failure (503): lock contention, (de)serialization, backend down.

    The user only ever sees the generic message; the reason goes to the logs.
    """
    def __init__(self, reason: str):
        super().__init__(GENERIC_FAILURE_MESSAGE, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
        self.reason = reason

    def __str__(self) -> str:
        return f"StoreError: {self.reason}"
