"""SQLAlchemy ORM models for the flask-energytrade ledger.

The ledger records which connected accounts and payment intents were
created through the extension.  It is an audit trail: the payment platform
stays the source of truth and the ledger is never used to resolve a
payment destination.

Usage with Flask-SQLAlchemy 3.x::

    from flask import Flask
    from flask_sqlalchemy import SQLAlchemy
    from flask_energytrade import FlaskEnergyTrade
    from flask_energytrade.models import Base

    db = SQLAlchemy(model_class=Base)

    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///energytrade.db"
    ext = FlaskEnergyTrade(app, db=db)
    db.init_app(app)

    with app.app_context():
        db.create_all()

Or bring your own tables by mixing in :class:`ConnectedAccountMixin` and
:class:`PaymentIntentMixin`, then pass them as ``account_model=`` and
``intent_model=``.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, validates

from flask_energytrade.status import CapabilityState


class ConnectedAccountMixin:
    """Columns for a seller account created on the payment platform."""

    account_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(254), index=True)
    external_account_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    transfers_state: Mapped[str] = mapped_column(String(32), default=CapabilityState.UNKNOWN.value)
    payouts_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    #: Capability states accepted for ``transfers_state``.
    VALID_STATES: frozenset[str] = frozenset(s.value for s in CapabilityState)

    @validates("transfers_state")
    def validate_transfers_state(self, key: str, value: str) -> str:
        """Reject capability states this package does not know.

        Raises:
            ValueError: If *value* is not a :class:`CapabilityState` value.
        """
        if value not in self.VALID_STATES:
            raise ValueError(
                f"Invalid transfers state {value!r}. "
                f"Allowed values: {', '.join(sorted(self.VALID_STATES))}."
            )
        return value

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.account_id} transfers={self.transfers_state!r}>"

    def to_dict(self) -> dict:
        """Return a plain-dict representation (mirrors the in-memory ledger format)."""
        return {
            "account_id": self.account_id,
            "email": self.email,
            "external_account_id": self.external_account_id,
            "transfers_state": self.transfers_state or CapabilityState.UNKNOWN.value,
            "payouts_enabled": bool(self.payouts_enabled),
        }


class PaymentIntentMixin:
    """Columns for a payment intent created for a buyer."""

    intent_id: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    destination: Mapped[str] = mapped_column(String(64), index=True)
    amount: Mapped[int] = mapped_column(Integer)
    application_fee_amount: Mapped[int] = mapped_column(Integer)
    currency: Mapped[str] = mapped_column(String(8))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.intent_id} -> {self.destination}>"

    def to_dict(self) -> dict:
        return {
            "intent_id": self.intent_id,
            "destination": self.destination,
            "amount": self.amount,
            "application_fee_amount": self.application_fee_amount,
            "currency": self.currency,
        }


class Base(DeclarativeBase):
    """Shared declarative base for flask-energytrade models."""


class ConnectedAccount(ConnectedAccountMixin, Base):
    """Built-in ledger row backed by the ``connected_accounts`` table."""

    __tablename__ = "connected_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)


class PaymentIntentRecord(PaymentIntentMixin, Base):
    """Built-in ledger row backed by the ``payment_intents`` table."""

    __tablename__ = "payment_intents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
