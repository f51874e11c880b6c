"""Payment platform gateways.

:class:`StripeGateway` talks to Stripe Connect; :class:`DummyGateway` keeps
accounts and payment intents in memory so the endpoints can be exercised
without network access or credentials.

Both gateways return plain dicts, never SDK objects, so the blueprint can
hand the values straight to ``jsonify``.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any

import stripe

from flask_energytrade.exceptions import GatewayError
from flask_energytrade.status import Capability, CapabilityState

logger = logging.getLogger(__name__)

#: Stripe API version pinned for every request.
DEFAULT_API_VERSION = "2025-10-29.clover"

ACCOUNT_COUNTRY = "CH"
PAYOUT_CURRENCY = "chf"
MERCHANT_CATEGORY_CODE = "1520"
BUSINESS_URL = "https://www.stromkonto.ch"


def _compact(value: Any) -> Any:
    """Drop ``None`` values (recursively) and dicts left empty by doing so."""
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            item = _compact(item)
            if item is None or item == {}:
                continue
            result[key] = item
        return result
    return value


def build_account_params(
    *,
    email: str,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
    address: dict[str, Any] | None = None,
    dob: dict[str, Any] | None = None,
    tos_ip: str | None = None,
    tos_date: int | None = None,
) -> dict[str, Any]:
    """Return the account-creation parameters for an individual seller."""
    address = address or {}
    dob = dob or {}
    params = {
        "type": "custom",
        "country": ACCOUNT_COUNTRY,
        "email": email,
        "business_type": "individual",
        "capabilities": {c.value: {"requested": True} for c in Capability},
        "business_profile": {"mcc": MERCHANT_CATEGORY_CODE, "url": BUSINESS_URL},
        "individual": {
            "first_name": first_name,
            "last_name": last_name,
            "phone": phone,
            "email": email,
            "address": {
                "line1": address.get("line1"),
                "city": address.get("city"),
                "state": address.get("state"),
                "postal_code": address.get("postal_code"),
                "country": address.get("country"),
            },
            "dob": {
                "day": dob.get("day"),
                "month": dob.get("month"),
                "year": dob.get("year"),
            },
        },
        "tos_acceptance": {
            "date": tos_date if tos_date is not None else int(time.time()),
            "ip": tos_ip,
        },
    }
    return _compact(params)


def build_bank_account_params(
    *,
    account_number: str,
    account_holder_name: str | None = None,
    account_holder_type: str | None = None,
) -> dict[str, Any]:
    """Return the payout bank-account parameters for a Swiss seller."""
    return _compact(
        {
            "object": "bank_account",
            "country": ACCOUNT_COUNTRY,
            "currency": PAYOUT_CURRENCY,
            "account_number": account_number,
            "account_holder_name": account_holder_name,
            "account_holder_type": account_holder_type,
        }
    )


class StripeGateway:
    """Gateway backed by the ``stripe`` SDK.

    The API key is sent with each request instead of being assigned to
    ``stripe.api_key``, so several gateways can coexist in one process.
    """

    key = "stripe"

    def __init__(self, api_key: str, *, api_version: str = DEFAULT_API_VERSION) -> None:
        self._api_key = api_key
        self._api_version = api_version

    @property
    def _options(self) -> dict[str, str]:
        return {"api_key": self._api_key, "stripe_version": self._api_version}

    @staticmethod
    def _plain(obj: Any) -> dict[str, Any]:
        # StripeObject renders itself as JSON, nested objects included.
        return json.loads(str(obj))

    def _call(self, func, *args, **params) -> dict[str, Any]:
        try:
            return self._plain(func(*args, **params, **self._options))
        except stripe.StripeError as exc:
            message = getattr(exc, "user_message", None) or str(exc)
            raise GatewayError(message) from exc

    def create_account(self, **profile: Any) -> dict[str, Any]:
        return self._call(stripe.Account.create, **build_account_params(**profile))

    def create_external_account(self, account_id: str, **bank: Any) -> dict[str, Any]:
        return self._call(
            stripe.Account.create_external_account,
            account_id,
            external_account=build_bank_account_params(**bank),
        )

    def create_account_link(self, account_id: str, *, refresh_url: str, return_url: str) -> dict[str, Any]:
        return self._call(
            stripe.AccountLink.create,
            account=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
            type="account_onboarding",
        )

    def retrieve_account(self, account_id: str) -> dict[str, Any]:
        return self._call(stripe.Account.retrieve, account_id)

    def list_accounts(self, limit: int) -> list[dict[str, Any]]:
        # Only the first page is read; the platform caps a page at 100.
        return self._call(stripe.Account.list, limit=limit).get("data", [])

    def create_payment_intent(
        self,
        *,
        amount: int,
        currency: str,
        application_fee_amount: int,
        destination: str,
        description: str,
    ) -> dict[str, Any]:
        return self._call(
            stripe.PaymentIntent.create,
            amount=amount,
            currency=currency,
            automatic_payment_methods={"enabled": True},
            application_fee_amount=application_fee_amount,
            transfer_data={"destination": destination},
            description=description,
        )


class DummyGateway:
    """In-memory stand-in for the payment platform.

    Every method call is appended to :attr:`calls` as ``(name, args)`` so
    tests can assert that the platform was (or was not) contacted.
    New accounts start with every capability ``inactive``; call
    :meth:`activate` to simulate verification completing.
    """

    key = "dummy"

    def __init__(self, base_url: str = "https://dummy-connect.example.com") -> None:
        self.base_url = base_url.rstrip("/")
        self.accounts: dict[str, dict[str, Any]] = {}
        self.external_accounts: dict[str, dict[str, Any]] = {}
        self.payment_intents: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def _record(self, name: str, **args: Any) -> None:
        self.calls.append((name, args))

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def _get(self, account_id: str) -> dict[str, Any]:
        try:
            return self.accounts[account_id]
        except KeyError:
            raise GatewayError(f"No such account: '{account_id}'") from None

    def create_account(self, **profile: Any) -> dict[str, Any]:
        self._record("create_account", **profile)
        params = build_account_params(**profile)
        account_id = f"acct_dummy_{uuid.uuid4().hex[:16]}"
        account = {
            "id": account_id,
            "object": "account",
            "email": params["email"],
            "country": params["country"],
            "capabilities": {c.value: CapabilityState.INACTIVE.value for c in Capability},
            "requirements": {
                "currently_due": ["individual.verification.document"],
                "eventually_due": ["individual.verification.document"],
                "past_due": [],
                "pending_verification": [],
                "disabled_reason": "requirements.past_due",
            },
            "payouts_enabled": False,
            "params": params,
        }
        self.accounts[account_id] = account
        return dict(account)

    def create_external_account(self, account_id: str, **bank: Any) -> dict[str, Any]:
        self._record("create_external_account", account_id=account_id, **bank)
        self._get(account_id)
        bank_id = f"ba_dummy_{uuid.uuid4().hex[:16]}"
        record = {"id": bank_id, "account": account_id, **build_bank_account_params(**bank)}
        self.external_accounts[bank_id] = record
        return dict(record)

    def create_account_link(self, account_id: str, *, refresh_url: str, return_url: str) -> dict[str, Any]:
        self._record(
            "create_account_link",
            account_id=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
        )
        self._get(account_id)
        return {
            "object": "account_link",
            "url": f"{self.base_url}/onboarding/{account_id}",
            "refresh_url": refresh_url,
            "return_url": return_url,
        }

    def retrieve_account(self, account_id: str) -> dict[str, Any]:
        self._record("retrieve_account", account_id=account_id)
        return dict(self._get(account_id))

    def list_accounts(self, limit: int) -> list[dict[str, Any]]:
        self._record("list_accounts", limit=limit)
        return [dict(a) for a in list(self.accounts.values())[:limit]]

    def create_payment_intent(self, **params: Any) -> dict[str, Any]:
        self._record("create_payment_intent", **params)
        intent_id = f"pi_dummy_{uuid.uuid4().hex[:16]}"
        intent = {
            "id": intent_id,
            "object": "payment_intent",
            "client_secret": f"{intent_id}_secret_{uuid.uuid4().hex[:12]}",
            "status": "requires_payment_method",
            **params,
        }
        self.payment_intents[intent_id] = intent
        return dict(intent)

    # ------------------------------------------------------------------
    # Simulation helpers
    # ------------------------------------------------------------------

    def activate(self, account_id: str) -> None:
        """Mark *account_id* as fully verified."""
        account = self._get(account_id)
        account["capabilities"] = {c.value: CapabilityState.ACTIVE.value for c in Capability}
        account["requirements"] = {
            "currently_due": [],
            "eventually_due": [],
            "past_due": [],
            "pending_verification": [],
            "disabled_reason": None,
        }
        account["payouts_enabled"] = True
        logger.debug("dummy account %s activated", account_id)
