"""Request handling shared by the Flask and Quart blueprints.

Each handler takes the already-decoded request data and returns a
``(body, status)`` pair; the blueprints only deal with framework I/O.
Required fields are checked before the gateway is touched, so a malformed
request never reaches the payment platform.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any, Mapping

from flask_energytrade.destinations import resolve_destination
from flask_energytrade.exceptions import EnergyTradeError, ValidationError
from flask_energytrade.fees import CURRENCY, platform_fee

if TYPE_CHECKING:
    from flask_energytrade import FlaskEnergyTrade

logger = logging.getLogger(__name__)

Result = tuple[dict[str, Any], int]

PAYMENT_DESCRIPTION = "Purchase"


def _error(message: str) -> Result:
    return {"error": message}, 400


def _platform_error(endpoint: str, exc: Exception) -> Result:
    logger.exception("%s error: %s", endpoint, exc)
    return _error(str(exc) or "unknown error")


def _require_string(data: Mapping[str, Any], field: str) -> str:
    value = data.get(field)
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field} is required")
    return value


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def create_connected_account(ext: "FlaskEnergyTrade", data: Mapping[str, Any], *, tos_ip: str | None = None) -> Result:
    try:
        email = _require_string(data, "email")
    except ValidationError as exc:
        return _error(str(exc))

    bank = _mapping(data.get("external_account"))

    try:
        account = ext.gateway.create_account(
            email=email,
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            phone=data.get("phone"),
            address=_mapping(data.get("address")),
            dob=_mapping(data.get("dob")),
            tos_ip=tos_ip,
        )
        bank_account_id = None
        if bank.get("account_number"):
            bank_account = ext.gateway.create_external_account(
                account["id"],
                account_number=bank["account_number"],
                account_holder_name=bank.get("account_holder_name"),
                account_holder_type=bank.get("account_holder_type"),
            )
            bank_account_id = bank_account["id"]
    except Exception as exc:
        return _platform_error("create-connected-account", exc)

    try:
        ext.save_account(account["id"], email=email, external_account_id=bank_account_id)
    except Exception:
        logger.exception("could not record connected account %s", account["id"])
    logger.info("connected account %s created for %s", account["id"], email)

    return {
        "connected_account_id": account["id"],
        "external_bank_account": bank_account_id,
    }, 200


def create_account_link(
    ext: "FlaskEnergyTrade",
    data: Mapping[str, Any],
    *,
    refresh_url: str,
    return_url: str,
) -> Result:
    try:
        account_id = _require_string(data, "account_id")
    except ValidationError as exc:
        return _error(str(exc))

    try:
        link = ext.gateway.create_account_link(
            account_id,
            refresh_url=refresh_url,
            return_url=return_url,
        )
    except Exception as exc:
        return _platform_error("create-account-link", exc)

    return {"account_link_url": link["url"]}, 200


def narrow_account(account: Mapping[str, Any]) -> dict[str, Any]:
    """Return the subset of an account object that is safe to hand to a browser."""
    return {
        "id": account.get("id"),
        "capabilities": account.get("capabilities") or {},
        "requirements": account.get("requirements") or {},
        "payouts_enabled": account.get("payouts_enabled") or False,
    }


def connected_account_status(ext: "FlaskEnergyTrade", account_id: str | None) -> Result:
    if not account_id:
        return _error("account_id query param is required")

    try:
        account = ext.gateway.retrieve_account(account_id)
    except Exception as exc:
        return _platform_error("connected-account-status", exc)

    body = narrow_account(account)
    try:
        ext.update_account_status(account_id, body)
    except Exception:
        logger.exception("could not record status of %s", account_id)
    return body, 200


def _valid_amount(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return value > 0


def create_payment_intent(ext: "FlaskEnergyTrade", data: Mapping[str, Any]) -> Result:
    amount = data.get("amount")
    if not _valid_amount(amount):
        return _error("amount must be a positive number")

    try:
        destination = resolve_destination(data, ext.gateway)
    except EnergyTradeError as exc:
        return _error(str(exc))

    fee = platform_fee(amount)
    try:
        intent = ext.gateway.create_payment_intent(
            amount=amount,
            currency=CURRENCY,
            application_fee_amount=fee,
            destination=destination,
            description=PAYMENT_DESCRIPTION,
        )
    except Exception as exc:
        return _platform_error("create-payment-intent", exc)

    try:
        ext.save_payment_intent(
            intent["id"],
            destination=destination,
            amount=amount,
            application_fee_amount=fee,
            currency=CURRENCY,
        )
    except Exception:
        logger.exception("could not record payment intent %s", intent["id"])
    return {"client_secret": intent.get("client_secret")}, 200
