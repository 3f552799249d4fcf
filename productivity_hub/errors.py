"""Exceptions raised by the hub."""

from __future__ import annotations


class HubError(Exception):
    """Base class for hub errors."""

    code = "internal_error"


class ValidationError(HubError):
    """Request parameters are missing or malformed.

    Attributes:
        details: Mapping of parameter name to list of messages.
    """

    code = "validation_error"

    def __init__(self, details: dict[str, list[str]] | str) -> None:
        if isinstance(details, str):
            details = {"general": [details]}
        self.details = details
        super().__init__("Validation failed")

    def add(self, name: str, message: str) -> None:
        self.details.setdefault(name, []).append(message)


class StoreError(HubError):
    """A record store query failed."""

    code = "store_error"

    def __init__(self, message: str, kind: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
