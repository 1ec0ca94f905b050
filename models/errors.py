"""Exception hierarchy for the integration."""

from __future__ import annotations

from typing import Optional


class IntegrationError(Exception):
    """Base class for every error raised by the integration."""


class ValidationError(IntegrationError, ValueError):
    """Input was rejected before any network call was made."""


class TransportError(IntegrationError):
    """A request failed to complete or returned an unexpected status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(IntegrationError):
    """A response body could not be decoded."""

    def __init__(self, message: str, body: str) -> None:
        super().__init__(f"{message}: {body!r}")
        self.body = body


class EncodeError(IntegrationError):
    """A request body could not be encoded as JSON."""


class EntityNotFoundError(TransportError):
    """The context broker has no entity with the requested id."""


class EntityAlreadyExistsError(TransportError):
    """The context broker already holds an entity with the given id."""


class TimestampParseError(ValidationError):
    """A snapshot timestamp is not a valid RFC 3339 date-time."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid RFC 3339 timestamp {value!r}.")
        self.value = value
