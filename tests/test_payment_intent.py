"""Tests for payment-intent creation: destination resolution and fee split."""

import pytest

from flask_energytrade.destinations import MISSING_DESTINATION


def _create(client, email):
    resp = client.post("/api/create-connected-account", json={"email": email})
    return resp.get_json()["connected_account_id"]


def _intent_args(gateway):
    name, args = gateway.calls[-1]
    assert name == "create_payment_intent"
    return args


# ---------------------------------------------------------------------------
# Destination by id
# ---------------------------------------------------------------------------


def test_receiver_account_id(client, gateway, seller):
    resp = client.post(
        "/api/create-payment-intent",
        json={"amount": 20000, "receiver_account_id": seller},
    )
    assert resp.status_code == 200
    assert "_secret_" in resp.get_json()["client_secret"]

    args = _intent_args(gateway)
    assert args["destination"] == seller
    assert args["amount"] == 20000
    assert args["currency"] == "usd"
    assert args["application_fee_amount"] == 200
    assert args["description"] == "Purchase"


def test_account_id_never_triggers_lookup(client, gateway):
    """An explicit id is used as-is, even with an e-mail alongside."""
    client.post(
        "/api/create-payment-intent",
        json={
            "amount": 1000,
            "receiver_account_id": "acct_unknown",
            "receiver_email": "seller@example.com",
        },
    )
    assert "list_accounts" not in gateway.call_names()
    assert _intent_args(gateway)["destination"] == "acct_unknown"


def test_legacy_seller_account_id(client, gateway):
    client.post("/api/create-payment-intent", json={"amount": 1000, "seller_account_id": "acct_legacy"})
    assert _intent_args(gateway)["destination"] == "acct_legacy"


def test_receiver_id_beats_legacy_id(client, gateway):
    client.post(
        "/api/create-payment-intent",
        json={"amount": 1000, "receiver_account_id": "acct_new", "seller_account_id": "acct_old"},
    )
    assert _intent_args(gateway)["destination"] == "acct_new"


def test_legacy_id_beats_receiver_email(client, gateway):
    """Any account id outranks any e-mail address."""
    client.post(
        "/api/create-payment-intent",
        json={"amount": 1000, "receiver_email": "seller@example.com", "seller_account_id": "acct_old"},
    )
    assert _intent_args(gateway)["destination"] == "acct_old"
    assert "list_accounts" not in gateway.call_names()


def test_empty_receiver_id_falls_back_to_legacy(client, gateway):
    client.post(
        "/api/create-payment-intent",
        json={"amount": 1000, "receiver_account_id": "", "seller_account_id": "acct_old"},
    )
    assert _intent_args(gateway)["destination"] == "acct_old"


# ---------------------------------------------------------------------------
# Destination by e-mail
# ---------------------------------------------------------------------------


def test_receiver_email_lookup(client, gateway):
    _create(client, "other@example.com")
    seller = _create(client, "seller@example.com")

    resp = client.post(
        "/api/create-payment-intent",
        json={"amount": 1000, "receiver_email": "seller@example.com"},
    )
    assert resp.status_code == 200
    assert ("list_accounts", {"limit": 100}) in gateway.calls
    assert _intent_args(gateway)["destination"] == seller


def test_legacy_seller_email_lookup(client, gateway):
    seller = _create(client, "seller@example.com")
    client.post("/api/create-payment-intent", json={"amount": 1000, "seller_email": "seller@example.com"})
    assert _intent_args(gateway)["destination"] == seller


def test_receiver_email_beats_legacy_email(client, gateway):
    receiver = _create(client, "receiver@example.com")
    _create(client, "seller@example.com")
    client.post(
        "/api/create-payment-intent",
        json={
            "amount": 1000,
            "receiver_email": "receiver@example.com",
            "seller_email": "seller@example.com",
        },
    )
    assert _intent_args(gateway)["destination"] == receiver


def test_email_match_is_exact(client, gateway):
    _create(client, "seller@example.com")
    resp = client.post(
        "/api/create-payment-intent",
        json={"amount": 1000, "receiver_email": "SELLER@example.com"},
    )
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "no connected account found for that email"}


def test_email_lookup_miss(client, gateway, seller):
    resp = client.post(
        "/api/create-payment-intent",
        json={"amount": 1000, "receiver_email": "nobody@example.com"},
    )
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "no connected account found for that email"}
    assert "create_payment_intent" not in gateway.call_names()


def test_email_lookup_only_reads_first_page(client, gateway):
    """Accounts beyond the first 100 cannot be found by e-mail."""
    for i in range(100):
        gateway.create_account(email=f"filler{i}@example.com")
    gateway.create_account(email="late@example.com")

    resp = client.post(
        "/api/create-payment-intent",
        json={"amount": 1000, "receiver_email": "late@example.com"},
    )
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "no connected account found for that email"}


def test_email_lookup_failure(client, gateway, monkeypatch, caplog):
    def fail(limit):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(gateway, "list_accounts", fail)

    resp = client.post(
        "/api/create-payment-intent",
        json={"amount": 1000, "receiver_email": "seller@example.com"},
    )
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "failed to lookup account"}
    assert "error looking up account by email" in caplog.text


@pytest.mark.parametrize(
    "body",
    [
        {"amount": 1000},
        {"amount": 1000, "receiver_email": ""},
        {"amount": 1000, "receiver_email": 12},
        {"amount": 1000, "receiver_account_id": "", "seller_account_id": None},
    ],
)
def test_missing_destination(client, gateway, body):
    resp = client.post("/api/create-payment-intent", json=body)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": MISSING_DESTINATION}
    assert gateway.calls == []


# ---------------------------------------------------------------------------
# Amount validation and fees
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("amount", [None, 0, -5, "1000", True, [1000], float("inf"), float("nan")])
def test_invalid_amount(client, gateway, amount):
    resp = client.post(
        "/api/create-payment-intent",
        json={"amount": amount, "receiver_account_id": "acct_1"},
    )
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "amount must be a positive number"}
    assert gateway.calls == []


@pytest.mark.parametrize(
    "amount, fee",
    [(1, 0), (49, 0), (50, 1), (149, 1), (150, 2), (250, 3), (20000, 200)],
)
def test_fee_rounding(client, gateway, amount, fee):
    client.post("/api/create-payment-intent", json={"amount": amount, "receiver_account_id": "acct_1"})
    assert _intent_args(gateway)["application_fee_amount"] == fee


def test_payment_intent_platform_error(client, gateway, monkeypatch):
    from flask_energytrade.exceptions import GatewayError

    def fail(**params):
        raise GatewayError("No such destination: 'acct_1'")

    monkeypatch.setattr(gateway, "create_payment_intent", fail)

    resp = client.post("/api/create-payment-intent", json={"amount": 1000, "receiver_account_id": "acct_1"})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "No such destination: 'acct_1'"}


def test_duplicate_requests_create_two_intents(client, ext):
    body = {"amount": 1000, "receiver_account_id": "acct_1"}
    first = client.post("/api/create-payment-intent", json=body).get_json()
    second = client.post("/api/create-payment-intent", json=body).get_json()

    assert first["client_secret"] != second["client_secret"]
    assert len(ext.all_payment_intents()) == 2
