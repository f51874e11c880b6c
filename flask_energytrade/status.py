"""Typed view of a connected account's verification state.

The payment platform returns loosely-typed maps for capabilities and
requirements.  :class:`AccountStatus` narrows them to a closed set of known
capability names so callers never have to guess at keys::

    status = AccountStatus.from_payload(payload)
    if status.capability(Capability.TRANSFERS) is CapabilityState.ACTIVE:
        ...

Capability names the platform adds later are dropped, and states this
package does not know map to :attr:`CapabilityState.UNKNOWN`.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    """Capabilities requested for every connected account."""

    CARD_PAYMENTS = "card_payments"
    TRANSFERS = "transfers"
    TWINT_PAYMENTS = "twint_payments"


class CapabilityState(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"
    UNREQUESTED = "unrequested"
    DISABLED = "disabled"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "CapabilityState":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class Requirements(BaseModel):
    """Fields the platform still needs before it activates capabilities."""

    model_config = ConfigDict(extra="ignore")

    currently_due: list[str] = Field(default_factory=list)
    eventually_due: list[str] = Field(default_factory=list)
    past_due: list[str] = Field(default_factory=list)
    pending_verification: list[str] = Field(default_factory=list)
    disabled_reason: str | None = None
    current_deadline: int | None = None

    @field_validator(
        "currently_due", "eventually_due", "past_due", "pending_verification", mode="before"
    )
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class AccountStatus(BaseModel):
    """Status payload returned by ``GET /connected-account-status``.

    ``error`` is set instead of the other fields when the endpoint answered
    with an error payload.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    capabilities: dict[Capability, CapabilityState] = Field(default_factory=dict)
    requirements: Requirements = Field(default_factory=Requirements)
    payouts_enabled: bool = False
    error: str | None = None

    @field_validator("capabilities", mode="before")
    @classmethod
    def _known_capabilities(cls, value: Any) -> dict[Capability, CapabilityState]:
        if not isinstance(value, dict):
            return {}
        known: dict[Capability, CapabilityState] = {}
        for name, state in value.items():
            try:
                capability = Capability(name)
            except ValueError:
                continue
            known[capability] = CapabilityState.parse(state)
        return known

    @field_validator("requirements", mode="before")
    @classmethod
    def _requirements_default(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("payouts_enabled", mode="before")
    @classmethod
    def _payouts_default(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("error", mode="before")
    @classmethod
    def _error_message(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return str(value.get("message") or "unknown error")
        if value is not None and not isinstance(value, str):
            return str(value)
        return value

    @classmethod
    def from_payload(cls, payload: Any) -> "AccountStatus":
        """Build a status from a raw JSON payload, tolerating any shape."""
        if not isinstance(payload, dict):
            return cls(error="malformed status payload")
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            logger.warning("malformed status payload: %s", exc)
            return cls(error="malformed status payload")

    def capability(self, name: Capability | str) -> CapabilityState:
        """Return the state of capability *name*, ``UNKNOWN`` when absent."""
        try:
            key = Capability(name)
        except ValueError:
            return CapabilityState.UNKNOWN
        return self.capabilities.get(key, CapabilityState.UNKNOWN)

    def is_active(self, name: Capability | str = Capability.TRANSFERS) -> bool:
        return self.capability(name) is CapabilityState.ACTIVE

    @property
    def transfers_active(self) -> bool:
        return self.is_active(Capability.TRANSFERS)
