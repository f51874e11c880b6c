"""Async client for the energytrade endpoints.

:class:`TradeClient` wraps the HTTP calls; :class:`TradeSession` adds the
state a browser page would keep: the seller's account id (persisted in an
injected :class:`AccountIdStore` so it survives the round-trip through the
hosted onboarding page) and the account status poll.

Example::

    async with TradeClient("http://localhost:5000") as client:
        session = TradeSession(client, FileAccountStore("~/.energytrade.json"))
        await session.restore()
        if session.account_id is None:
            await session.create_seller(SellerProfile(email="seller@example.com"))
        url = await session.start_onboarding()
        ...
        secret = await session.create_payment(kwh=1000)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Literal

import httpx
from pydantic import BaseModel, Field

from flask_energytrade.exceptions import TradeError
from flask_energytrade.fees import amount_for_kwh
from flask_energytrade.poller import POLL_INTERVAL, AccountStatusPoller, OnUpdate
from flask_energytrade.status import AccountStatus

logger = logging.getLogger(__name__)

ACCOUNT_ID_PREFIX = "acct_"

#: Key under which the account id is persisted.
STORAGE_KEY = "connected_account_id"


# ---------------------------------------------------------------------------
# Seller profile
# ---------------------------------------------------------------------------


class Address(BaseModel):
    line1: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = "CH"


class DateOfBirth(BaseModel):
    day: int | None = Field(default=None, ge=1, le=31)
    month: int | None = Field(default=None, ge=1, le=12)
    year: int | None = Field(default=None, ge=1900)


class ExternalAccount(BaseModel):
    """Bank account that receives payouts."""

    account_number: str | None = None
    account_holder_name: str | None = None
    account_holder_type: Literal["individual", "company"] = "individual"


class SellerProfile(BaseModel):
    """Form data sent to ``POST /create-connected-account``."""

    email: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    address: Address = Field(default_factory=Address)
    dob: DateOfBirth = Field(default_factory=DateOfBirth)
    external_account: ExternalAccount = Field(default_factory=ExternalAccount)


# ---------------------------------------------------------------------------
# Account id storage
# ---------------------------------------------------------------------------


class AccountIdStore:
    """Where a session keeps the seller's account id between runs."""

    def get(self) -> str | None:
        raise NotImplementedError

    def set(self, account_id: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryAccountStore(AccountIdStore):
    def __init__(self, account_id: str | None = None) -> None:
        self._account_id = account_id

    def get(self) -> str | None:
        return self._account_id

    def set(self, account_id: str) -> None:
        self._account_id = account_id

    def clear(self) -> None:
        self._account_id = None


class FileAccountStore(AccountIdStore):
    """Keep the account id in a small JSON file.

    Storage problems never interrupt the caller: an unreadable file reads as
    empty, and a failed write is logged.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def get(self) -> str | None:
        try:
            data = json.loads(self.path.read_text())
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("could not read %s: %s", self.path, exc)
            return None
        value = data.get(STORAGE_KEY) if isinstance(data, dict) else None
        return value if isinstance(value, str) and value else None

    def set(self, account_id: str) -> None:
        try:
            self.path.write_text(json.dumps({STORAGE_KEY: account_id}))
        except OSError as exc:
            logger.warning("could not write %s: %s", self.path, exc)

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("could not remove %s: %s", self.path, exc)


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


def build_payment_request(amount: int, receiver: str, seller: str | None = None) -> dict[str, Any]:
    """Return the ``create-payment-intent`` body for *receiver* (and *seller*).

    Values starting with ``acct_`` are sent as account ids, anything else as
    e-mail addresses.
    """
    body: dict[str, Any] = {"amount": amount}
    if receiver.startswith(ACCOUNT_ID_PREFIX):
        body["receiver_account_id"] = receiver
    else:
        body["receiver_email"] = receiver

    if seller:
        if seller.startswith(ACCOUNT_ID_PREFIX):
            body["seller_account_id"] = seller
        else:
            body["seller_email"] = seller
    return body


class TradeClient:
    """HTTP client for the energytrade blueprint.

    Args:
        base_url: Where the application is served.
        url_prefix: The blueprint's ``ENERGYTRADE_URL_PREFIX``.
        http: An existing :class:`httpx.AsyncClient`; one is created when
            omitted and closed by :meth:`aclose`.
        timeout: Request timeout in seconds for a created client.
    """

    def __init__(
        self,
        base_url: str,
        *,
        url_prefix: str = "/api",
        http: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._root = base_url.rstrip("/") + "/" + url_prefix.strip("/")

    async def __aenter__(self) -> "TradeClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def _url(self, path: str) -> str:
        return f"{self._root}/{path}"

    @staticmethod
    def _checked(response: httpx.Response) -> dict[str, Any]:
        data = response.json()
        if not isinstance(data, dict):
            raise TradeError(f"unexpected response: {data!r}")
        if data.get("error"):
            raise TradeError(data["error"])
        return data

    async def config(self) -> dict[str, Any]:
        return self._checked(await self._http.get(self._url("config")))

    async def create_account(self, profile: SellerProfile) -> dict[str, Any]:
        """Create a connected account; returns ``connected_account_id`` and ``external_bank_account``."""
        response = await self._http.post(
            self._url("create-connected-account"),
            json=profile.model_dump(exclude_none=True),
        )
        return self._checked(response)

    async def create_account_link(self, account_id: str) -> str:
        response = await self._http.post(
            self._url("create-account-link"), json={"account_id": account_id}
        )
        return self._checked(response)["account_link_url"]

    async def account_status(self, account_id: str) -> dict[str, Any]:
        """Return the raw status payload; ``{"error": ...}`` payloads are returned, not raised."""
        response = await self._http.get(
            self._url("connected-account-status"), params={"account_id": account_id}
        )
        return response.json()

    async def create_payment_intent(self, body: dict[str, Any]) -> str:
        response = await self._http.post(self._url("create-payment-intent"), json=body)
        return self._checked(response)["client_secret"]


class TradeSession:
    """Seller/buyer workflow state around a :class:`TradeClient`."""

    def __init__(
        self,
        client: TradeClient,
        store: AccountIdStore,
        *,
        interval: float = POLL_INTERVAL,
        on_status: OnUpdate | None = None,
    ) -> None:
        self.client = client
        self.store = store
        self.account_id: str | None = None
        self.poller = AccountStatusPoller(
            client.account_status, interval=interval, on_update=on_status
        )

    @property
    def status(self) -> AccountStatus | None:
        return self.poller.status

    @property
    def transfers_active(self) -> bool:
        return self.poller.is_capable

    async def restore(self) -> str | None:
        """Load the persisted account id and start polling it."""
        account_id = self.store.get()
        if account_id:
            self.set_account(account_id)
        return account_id

    def set_account(self, account_id: str) -> None:
        if account_id == self.account_id and self.poller.running:
            return
        self.account_id = account_id
        self.poller.watch(account_id)

    async def create_seller(self, profile: SellerProfile) -> str:
        """Create the seller's account, persist its id and start polling."""
        data = await self.client.create_account(profile)
        account_id = data["connected_account_id"]
        self.store.set(account_id)
        self.set_account(account_id)
        return account_id

    async def start_onboarding(self) -> str:
        """Return the hosted onboarding URL for the session's account."""
        if not self.account_id:
            raise TradeError("no seller account in this session")
        return await self.client.create_account_link(self.account_id)

    async def create_payment(
        self,
        kwh: int | float,
        *,
        receiver: str | None = None,
        seller: str | None = None,
    ) -> str:
        """Create a payment intent for *kwh* and return its client secret.

        *receiver* and *seller* default to the session's account.
        """
        receiver = receiver or self.account_id
        if not receiver:
            raise TradeError("a receiver account id or email is required")
        body = build_payment_request(amount_for_kwh(kwh), receiver, seller or self.account_id)
        return await self.client.create_payment_intent(body)

    async def close(self) -> None:
        self.poller.stop()
