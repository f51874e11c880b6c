"""Async blueprint for Quart applications.

This module mirrors :mod:`flask_energytrade.views` but uses ``async def``
view functions and awaits Quart's coroutine-based request helpers.

It is selected automatically by :meth:`~flask_energytrade.FlaskEnergyTrade.init_app`
when the application is a :class:`quart.Quart` instance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask_energytrade import handlers

if TYPE_CHECKING:
    from flask_energytrade import FlaskEnergyTrade


def create_async_blueprint(ext: "FlaskEnergyTrade"):
    """Return a Quart Blueprint pre-configured with the extension instance."""
    try:
        from quart import Blueprint, current_app, jsonify, request, url_for
    except ImportError as exc:  # pragma: no cover
        raise ImportError(
            "quart is required for flask_energytrade.quart_views. "
            "Install it with: pip install 'flask-energytrade[quart]'"
        ) from exc

    bp = Blueprint("energytrade", __name__)

    async def json_body() -> dict:
        data = await request.get_json(silent=True)
        return data if isinstance(data, dict) else {}

    # ------------------------------------------------------------------
    # Seller onboarding
    # ------------------------------------------------------------------

    @bp.route("/create-connected-account", methods=["POST"])
    async def create_connected_account():
        """Create a receiving account for a seller."""
        body, status = handlers.create_connected_account(
            ext, await json_body(), tos_ip=request.remote_addr
        )
        return jsonify(body), status

    @bp.route("/create-account-link", methods=["POST"])
    async def create_account_link():
        """Return a hosted onboarding URL for ``account_id``."""
        base_url = current_app.config["ENERGYTRADE_BASE_URL"].rstrip("/")
        body, status = handlers.create_account_link(
            ext,
            await json_body(),
            refresh_url=base_url,
            return_url=base_url + url_for("energytrade.onboarding_complete"),
        )
        return jsonify(body), status

    @bp.route("/connected-account-status")
    async def connected_account_status():
        """Return capabilities, requirements and payout state of an account."""
        body, status = handlers.connected_account_status(ext, request.args.get("account_id"))
        return jsonify(body), status

    # ------------------------------------------------------------------
    # Buyer payment
    # ------------------------------------------------------------------

    @bp.route("/create-payment-intent", methods=["POST"])
    async def create_payment_intent():
        """Create a payment intent that transfers to the seller minus the platform fee."""
        body, status = handlers.create_payment_intent(ext, await json_body())
        return jsonify(body), status

    @bp.route("/config")
    async def config():
        return jsonify(
            {"publishable_key": current_app.config["ENERGYTRADE_STRIPE_PUBLISHABLE_KEY"]}
        )

    # ------------------------------------------------------------------
    # Return targets for the hosted pages
    # ------------------------------------------------------------------

    @bp.route("/onboarding-complete")
    async def onboarding_complete():
        return jsonify({"status": "onboarding_complete"})

    @bp.route("/confirm")
    async def confirm():
        return jsonify(
            {
                "status": "confirmed",
                "payment_intent": request.args.get("payment_intent") or None,
                "redirect_status": request.args.get("redirect_status") or None,
            }
        )

    return bp
