"""flask_energytrade – Flask/Quart extension for peer-to-peer energy trades over Stripe Connect."""

from __future__ import annotations

import logging
import os
from typing import Any

from flask_energytrade.gateway import DEFAULT_API_VERSION, DummyGateway, StripeGateway
from flask_energytrade.views import create_blueprint
from flask_energytrade.version import __version__

__all__ = ["FlaskEnergyTrade", "DummyGateway", "StripeGateway", "__version__"]

logger = logging.getLogger(__name__)


def _is_quart_app(app) -> bool:
    """Return ``True`` when *app* is a :class:`quart.Quart` instance."""
    try:
        from quart import Quart

        return isinstance(app, Quart)
    except ImportError:
        return False


class FlaskEnergyTrade:
    """Flask/Quart extension that lets sellers onboard and buyers pay them for kWh.

    Usage – application factory pattern::

        from flask import Flask
        from flask_energytrade import FlaskEnergyTrade

        energytrade = FlaskEnergyTrade()

        def create_app():
            app = Flask(__name__)
            app.config["ENERGYTRADE_STRIPE_SECRET_KEY"] = "sk_test_..."
            energytrade.init_app(app)
            return app

    Usage – without credentials, against the in-memory platform::

        from flask_energytrade import DummyGateway, FlaskEnergyTrade

        app = Flask(__name__)
        ext = FlaskEnergyTrade(app, gateway=DummyGateway())

    Usage – with a SQLAlchemy ledger (Flask-SQLAlchemy 3.x)::

        from flask_sqlalchemy import SQLAlchemy
        from flask_energytrade.models import Base

        db = SQLAlchemy(model_class=Base)
        ext = FlaskEnergyTrade(app, db=db)
        db.init_app(app)

    Usage – with Quart (async)::

        from quart import Quart

        app = Quart(__name__)
        ext = FlaskEnergyTrade(app)   # async blueprint selected automatically

    Configuration keys (set on ``app.config``):

    ``ENERGYTRADE_STRIPE_SECRET_KEY``
        Secret API key (falls back to ``$STRIPE_SECRET_KEY``).  Required
        unless a gateway is passed in.
    ``ENERGYTRADE_STRIPE_PUBLISHABLE_KEY``
        Publishable key served to clients by ``GET /config`` (falls back to
        ``$STRIPE_PUBLISHABLE_KEY``).
    ``ENERGYTRADE_BASE_URL``
        Base URL used for onboarding redirect targets (falls back to
        ``$BASE_URL``, then ``"http://localhost:5000"``).
    ``ENERGYTRADE_URL_PREFIX``
        URL prefix for the blueprint (default: ``"/api"``).
    ``ENERGYTRADE_STRIPE_API_VERSION``
        Stripe API version sent with every request.
    """

    def __init__(self, app=None, *, gateway=None, db=None, account_model=None, intent_model=None) -> None:
        self._gateway = gateway
        self._db = db
        self._account_model = account_model
        self._intent_model = intent_model
        # In-memory ledger, kept even when a db is configured.
        self._accounts: dict[str, dict[str, Any]] = {}
        self._intents: dict[str, dict[str, Any]] = {}

        if app is not None:
            self.init_app(app)

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def init_app(self, app, *, gateway=None, db=None) -> None:
        """Initialise the extension against *app* (Flask or Quart)."""
        if gateway is not None:
            self._gateway = gateway
        if db is not None:
            self._db = db

        app.config.setdefault("ENERGYTRADE_STRIPE_SECRET_KEY", os.environ.get("STRIPE_SECRET_KEY"))
        app.config.setdefault(
            "ENERGYTRADE_STRIPE_PUBLISHABLE_KEY", os.environ.get("STRIPE_PUBLISHABLE_KEY")
        )
        app.config.setdefault(
            "ENERGYTRADE_BASE_URL", os.environ.get("BASE_URL") or "http://localhost:5000"
        )
        app.config.setdefault("ENERGYTRADE_URL_PREFIX", "/api")
        app.config.setdefault("ENERGYTRADE_STRIPE_API_VERSION", DEFAULT_API_VERSION)

        if self._gateway is None:
            secret_key = app.config["ENERGYTRADE_STRIPE_SECRET_KEY"]
            if not secret_key:
                raise RuntimeError(
                    "ENERGYTRADE_STRIPE_SECRET_KEY is not set. "
                    "Configure it or pass gateway=DummyGateway() for local use."
                )
            self._gateway = StripeGateway(
                secret_key, api_version=app.config["ENERGYTRADE_STRIPE_API_VERSION"]
            )

        if _is_quart_app(app):
            from flask_energytrade.quart_views import create_async_blueprint

            blueprint = create_async_blueprint(self)
        else:
            blueprint = create_blueprint(self)

        url_prefix = app.config["ENERGYTRADE_URL_PREFIX"]
        app.register_blueprint(blueprint, url_prefix=url_prefix)

        app.extensions["energytrade"] = self
        logger.debug("energytrade registered at %s using %s gateway", url_prefix, self._gateway.key)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def gateway(self):
        """The payment platform gateway in use."""
        if self._gateway is None:
            raise RuntimeError(
                "FlaskEnergyTrade extension not initialised. Call init_app(app) first."
            )
        return self._gateway

    @property
    def _account_cls(self):
        if self._account_model is not None:
            return self._account_model
        from flask_energytrade.models import ConnectedAccount
        return ConnectedAccount

    @property
    def _intent_cls(self):
        if self._intent_model is not None:
            return self._intent_model
        from flask_energytrade.models import PaymentIntentRecord
        return PaymentIntentRecord

    def _find_account_row(self, account_id: str):
        return (
            self._db.session.query(self._account_cls)
            .filter_by(account_id=account_id)
            .first()
        )

    def _commit(self) -> None:
        try:
            self._db.session.commit()
        except Exception:
            self._db.session.rollback()
            raise

    # ------------------------------------------------------------------
    # Ledger helpers
    # ------------------------------------------------------------------

    def save_account(self, account_id: str, *, email: str, external_account_id: str | None = None) -> None:
        """Record a newly created connected account."""
        data = {
            "account_id": account_id,
            "email": email,
            "external_account_id": external_account_id,
            "transfers_state": "unknown",
            "payouts_enabled": False,
        }

        if self._db is not None:
            record = self._account_cls(
                account_id=account_id,
                email=email,
                external_account_id=external_account_id,
                transfers_state="unknown",
                payouts_enabled=False,
            )
            self._db.session.add(record)
            self._commit()

        self._accounts[account_id] = data

    def get_account(self, account_id: str) -> dict[str, Any] | None:
        """Return the ledger entry for *account_id*, or ``None``."""
        if self._db is not None:
            record = self._find_account_row(account_id)
            return record.to_dict() if record is not None else None
        return self._accounts.get(account_id)

    def update_account_status(self, account_id: str, status: dict[str, Any]) -> bool:
        """Store the transfers state and payouts flag from a narrowed *status*.

        Returns ``False`` when *account_id* was not created through this
        extension.
        """
        from flask_energytrade.status import AccountStatus

        parsed = AccountStatus.from_payload(status)
        transfers = parsed.capability("transfers").value

        found = False
        if self._db is not None:
            record = self._find_account_row(account_id)
            if record is not None:
                record.transfers_state = transfers
                record.payouts_enabled = parsed.payouts_enabled
                self._commit()
                found = True

        if account_id in self._accounts:
            self._accounts[account_id]["transfers_state"] = transfers
            self._accounts[account_id]["payouts_enabled"] = parsed.payouts_enabled
            found = True
        return found

    def sync_account(self, account_id: str) -> dict[str, Any] | None:
        """Re-read *account_id* from the platform and update the ledger.

        Returns the updated ledger entry, or ``None`` when the account is not
        in the ledger.  Platform errors propagate.
        """
        from flask_energytrade.handlers import narrow_account

        if self.get_account(account_id) is None:
            return None
        account = self.gateway.retrieve_account(account_id)
        self.update_account_status(account_id, narrow_account(account))
        return self.get_account(account_id)

    def all_accounts(self) -> list[dict[str, Any]]:
        """Return every recorded connected account."""
        if self._db is not None:
            return [r.to_dict() for r in self._db.session.query(self._account_cls).all()]
        return list(self._accounts.values())

    def save_payment_intent(
        self,
        intent_id: str,
        *,
        destination: str,
        amount: int,
        application_fee_amount: int,
        currency: str,
    ) -> None:
        """Record a created payment intent. Duplicates are not detected."""
        data = {
            "intent_id": intent_id,
            "destination": destination,
            "amount": amount,
            "application_fee_amount": application_fee_amount,
            "currency": currency,
        }

        if self._db is not None:
            self._db.session.add(self._intent_cls(**data))
            self._commit()

        self._intents[intent_id] = data

    def all_payment_intents(self) -> list[dict[str, Any]]:
        """Return every recorded payment intent."""
        if self._db is not None:
            return [r.to_dict() for r in self._db.session.query(self._intent_cls).all()]
        return list(self._intents.values())
