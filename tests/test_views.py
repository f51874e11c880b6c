"""Tests for the onboarding, status, config and landing views."""

import pytest

from flask_energytrade.exceptions import GatewayError


PROFILE = {
    "email": "anna@example.com",
    "first_name": "Anna",
    "last_name": "Muster",
    "phone": "+41790000000",
    "address": {
        "line1": "Bahnhofstrasse 1",
        "city": "Zürich",
        "state": "ZH",
        "postal_code": "8001",
        "country": "CH",
    },
    "dob": {"day": 1, "month": 2, "year": 1990},
    "external_account": {
        "account_number": "CH9300762011623852957",
        "account_holder_name": "Anna Muster",
        "account_holder_type": "individual",
    },
}


# ---------------------------------------------------------------------------
# Create connected account
# ---------------------------------------------------------------------------


def test_create_account_returns_ids(client, gateway):
    resp = client.post("/api/create-connected-account", json=PROFILE)
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["connected_account_id"].startswith("acct_dummy_")
    assert data["external_bank_account"].startswith("ba_dummy_")
    assert gateway.call_names() == ["create_account", "create_external_account"]


def test_create_account_sends_profile(client, gateway):
    resp = client.post("/api/create-connected-account", json=PROFILE)
    account_id = resp.get_json()["connected_account_id"]

    params = gateway.accounts[account_id]["params"]
    assert params["type"] == "custom"
    assert params["country"] == "CH"
    assert params["business_type"] == "individual"
    assert set(params["capabilities"]) == {"card_payments", "transfers", "twint_payments"}
    assert params["individual"]["address"]["city"] == "Zürich"
    assert params["individual"]["dob"] == {"day": 1, "month": 2, "year": 1990}
    assert params["tos_acceptance"]["ip"] == "127.0.0.1"
    assert isinstance(params["tos_acceptance"]["date"], int)


def test_create_account_attaches_swiss_bank_account(client, gateway):
    resp = client.post("/api/create-connected-account", json=PROFILE)
    bank_id = resp.get_json()["external_bank_account"]

    bank = gateway.external_accounts[bank_id]
    assert bank["country"] == "CH"
    assert bank["currency"] == "chf"
    assert bank["account_number"] == "CH9300762011623852957"


def test_create_account_without_bank_account(client, gateway):
    """The payout destination is optional."""
    resp = client.post("/api/create-connected-account", json={"email": "bob@example.com"})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["external_bank_account"] is None
    assert gateway.call_names() == ["create_account"]


def test_create_account_omits_missing_profile_fields(client, gateway):
    resp = client.post("/api/create-connected-account", json={"email": "bob@example.com"})
    params = gateway.accounts[resp.get_json()["connected_account_id"]]["params"]
    assert params["individual"] == {"email": "bob@example.com"}


@pytest.mark.parametrize("body", [{}, {"email": ""}, {"email": 42}, {"first_name": "Anna"}])
def test_create_account_requires_email(client, gateway, body):
    resp = client.post("/api/create-connected-account", json=body)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "email is required"}
    assert gateway.calls == []


def test_create_account_non_json_body(client, gateway):
    resp = client.post("/api/create-connected-account", data="nope", content_type="text/plain")
    assert resp.status_code == 400
    assert gateway.calls == []


def test_create_account_records_ledger(client, ext):
    resp = client.post("/api/create-connected-account", json=PROFILE)
    account_id = resp.get_json()["connected_account_id"]

    stored = ext.get_account(account_id)
    assert stored["email"] == "anna@example.com"
    assert stored["transfers_state"] == "unknown"


def test_create_account_platform_error(client, gateway, monkeypatch, caplog):
    """Platform errors are passed through verbatim and logged."""

    def fail(**profile):
        raise GatewayError("Invalid email address: anna@")

    monkeypatch.setattr(gateway, "create_account", fail)

    resp = client.post("/api/create-connected-account", json={"email": "anna@"})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Invalid email address: anna@"}
    assert "create-connected-account error" in caplog.text


def test_create_account_bank_error(client, gateway, monkeypatch):
    def fail(account_id, **bank):
        raise GatewayError("Invalid IBAN")

    monkeypatch.setattr(gateway, "create_external_account", fail)

    resp = client.post("/api/create-connected-account", json=PROFILE)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Invalid IBAN"}


def test_platform_error_without_message(client, gateway, monkeypatch):
    def fail(**profile):
        raise RuntimeError()

    monkeypatch.setattr(gateway, "create_account", fail)

    resp = client.post("/api/create-connected-account", json={"email": "x@example.com"})
    assert resp.get_json() == {"error": "unknown error"}


# ---------------------------------------------------------------------------
# Account link
# ---------------------------------------------------------------------------


def test_account_link(client, gateway, seller):
    resp = client.post("/api/create-account-link", json={"account_id": seller})
    assert resp.status_code == 200
    assert resp.get_json()["account_link_url"] == f"https://dummy-connect.example.com/onboarding/{seller}"

    name, args = gateway.calls[-1]
    assert name == "create_account_link"
    assert args["refresh_url"] == "https://trade.example.com"
    assert args["return_url"] == "https://trade.example.com/api/onboarding-complete"


@pytest.mark.parametrize("body", [{}, {"account_id": ""}, {"account_id": 7}])
def test_account_link_requires_account_id(client, gateway, body):
    resp = client.post("/api/create-account-link", json=body)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "account_id is required"}
    assert gateway.calls == []


def test_account_link_unknown_account(client):
    resp = client.post("/api/create-account-link", json={"account_id": "acct_missing"})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "No such account: 'acct_missing'"}


# ---------------------------------------------------------------------------
# Account status
# ---------------------------------------------------------------------------


def test_status_narrows_account(client, seller):
    resp = client.get(f"/api/connected-account-status?account_id={seller}")
    assert resp.status_code == 200
    data = resp.get_json()
    assert set(data) == {"id", "capabilities", "requirements", "payouts_enabled"}
    assert data["id"] == seller
    assert data["capabilities"]["transfers"] == "inactive"
    assert data["requirements"]["currently_due"] == ["individual.verification.document"]
    assert data["payouts_enabled"] is False


def test_status_after_activation(client, gateway, ext, seller):
    gateway.activate(seller)

    data = client.get(f"/api/connected-account-status?account_id={seller}").get_json()
    assert data["capabilities"]["transfers"] == "active"
    assert data["payouts_enabled"] is True

    stored = ext.get_account(seller)
    assert stored["transfers_state"] == "active"
    assert stored["payouts_enabled"] is True


def test_status_defaults_missing_maps(client, gateway, seller):
    account = gateway.accounts[seller]
    account["capabilities"] = None
    account.pop("requirements")
    account.pop("payouts_enabled")

    data = client.get(f"/api/connected-account-status?account_id={seller}").get_json()
    assert data["capabilities"] == {}
    assert data["requirements"] == {}
    assert data["payouts_enabled"] is False


def test_status_requires_account_id(client, gateway):
    resp = client.get("/api/connected-account-status")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "account_id query param is required"}
    assert gateway.calls == []


def test_status_unknown_account(client):
    resp = client.get("/api/connected-account-status?account_id=acct_missing")
    assert resp.status_code == 400
    assert "acct_missing" in resp.get_json()["error"]


# ---------------------------------------------------------------------------
# Config and landing pages
# ---------------------------------------------------------------------------


def test_config_returns_publishable_key(client):
    resp = client.get("/api/config")
    assert resp.get_json() == {"publishable_key": "pk_test_123"}


def test_onboarding_complete(client):
    resp = client.get("/api/onboarding-complete")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "onboarding_complete"


def test_confirm(client):
    resp = client.get("/api/confirm?payment_intent=pi_1&redirect_status=succeeded")
    data = resp.get_json()
    assert data == {
        "status": "confirmed",
        "payment_intent": "pi_1",
        "redirect_status": "succeeded",
    }


def test_confirm_without_params(client):
    data = client.get("/api/confirm").get_json()
    assert data["payment_intent"] is None
