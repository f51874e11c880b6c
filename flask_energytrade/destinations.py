"""Resolve which connected account receives a payment."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from flask_energytrade.exceptions import AccountLookupFailed, AccountNotFound, ValidationError

logger = logging.getLogger(__name__)

#: Size of the single account page searched when resolving by e-mail.
ACCOUNT_LOOKUP_LIMIT = 100

MISSING_DESTINATION = (
    "receiver_account_id or receiver_email (or seller_account_id/seller_email) is required"
)


def resolve_destination(data: Mapping[str, Any], gateway, *, limit: int = ACCOUNT_LOOKUP_LIMIT) -> str:
    """Return the destination account id for a payment request.

    The ``receiver_*`` fields take precedence over the legacy ``seller_*``
    fields, and any account id takes precedence over any e-mail address.
    An id is used as given; the platform is not asked whether it exists.

    E-mail lookup reads one page of *limit* accounts and matches the e-mail
    exactly, so an account beyond the first page cannot be found.

    Raises:
        ValidationError: Neither an account id nor an e-mail was supplied.
        AccountNotFound: No account in the page has that e-mail.
        AccountLookupFailed: The platform failed to list accounts.
    """
    destination = data.get("receiver_account_id") or data.get("seller_account_id")
    if destination:
        return destination

    email = data.get("receiver_email") or data.get("seller_email")
    if not email or not isinstance(email, str):
        raise ValidationError(MISSING_DESTINATION)

    try:
        accounts = gateway.list_accounts(limit)
    except Exception as exc:
        logger.exception("error looking up account by email: %s", exc)
        raise AccountLookupFailed() from exc

    for account in accounts:
        if account.get("email") == email:
            return account["id"]
    raise AccountNotFound()
