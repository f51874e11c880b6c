"""Shared pytest fixtures for flask-energytrade tests."""

import pytest
from flask import Flask

from flask_energytrade import DummyGateway, FlaskEnergyTrade


@pytest.fixture
def gateway():
    """In-memory payment platform."""
    return DummyGateway()


@pytest.fixture
def app(gateway):
    """Flask app configured with DummyGateway and test settings."""
    application = Flask(__name__)
    application.config["TESTING"] = True
    application.config["SECRET_KEY"] = "test-secret"
    application.config["ENERGYTRADE_STRIPE_PUBLISHABLE_KEY"] = "pk_test_123"
    application.config["ENERGYTRADE_BASE_URL"] = "https://trade.example.com"

    FlaskEnergyTrade(application, gateway=gateway)

    yield application


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def ext(app):
    """The FlaskEnergyTrade extension instance."""
    return app.extensions["energytrade"]


@pytest.fixture
def seller(client):
    """Id of a connected account created through the API."""
    resp = client.post("/api/create-connected-account", json={"email": "seller@example.com"})
    return resp.get_json()["connected_account_id"]
