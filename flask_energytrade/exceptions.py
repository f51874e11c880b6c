"""Exceptions raised by flask-energytrade."""

from __future__ import annotations


class EnergyTradeError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(EnergyTradeError):
    """A required request field is missing or has the wrong type."""


class AccountNotFound(EnergyTradeError):
    """No connected account matches the e-mail address that was looked up."""

    def __init__(self, message: str = "no connected account found for that email") -> None:
        super().__init__(message)


class AccountLookupFailed(EnergyTradeError):
    """Listing connected accounts on the payment platform failed."""

    def __init__(self, message: str = "failed to lookup account") -> None:
        super().__init__(message)


class GatewayError(EnergyTradeError):
    """The payment platform rejected a request.

    ``str(exc)`` is the platform's own message, passed through unchanged.
    """


class TradeError(EnergyTradeError):
    """An endpoint answered with an ``{"error": ...}`` payload (client side)."""
