"""Blueprint with the onboarding, status and payment routes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import Blueprint, current_app, jsonify, request, url_for

from flask_energytrade import handlers

if TYPE_CHECKING:
    from flask_energytrade import FlaskEnergyTrade


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def onboarding_urls() -> tuple[str, str]:
    """Return ``(refresh_url, return_url)`` for hosted onboarding."""
    base_url = current_app.config["ENERGYTRADE_BASE_URL"].rstrip("/")
    return base_url, base_url + url_for("energytrade.onboarding_complete")


def create_blueprint(ext: "FlaskEnergyTrade") -> Blueprint:
    """Return a Blueprint pre-configured with the extension instance."""

    bp = Blueprint("energytrade", __name__)

    # ------------------------------------------------------------------
    # Seller onboarding
    # ------------------------------------------------------------------

    @bp.route("/create-connected-account", methods=["POST"])
    def create_connected_account():
        """Create a receiving account for a seller.

        JSON body:

        * ``email`` – required
        * ``first_name``, ``last_name``, ``phone``
        * ``address`` – ``{line1, city, state, postal_code, country}``
        * ``dob`` – ``{day, month, year}``
        * ``external_account`` – ``{account_number, account_holder_name,
          account_holder_type}``; attached as the payout bank account when
          an account number is present
        """
        body, status = handlers.create_connected_account(
            ext, _json_body(), tos_ip=request.remote_addr
        )
        return jsonify(body), status

    @bp.route("/create-account-link", methods=["POST"])
    def create_account_link():
        """Return a hosted onboarding URL for ``account_id``."""
        refresh_url, return_url = onboarding_urls()
        body, status = handlers.create_account_link(
            ext, _json_body(), refresh_url=refresh_url, return_url=return_url
        )
        return jsonify(body), status

    @bp.route("/connected-account-status")
    def connected_account_status():
        """Return capabilities, requirements and payout state of an account."""
        body, status = handlers.connected_account_status(ext, request.args.get("account_id"))
        return jsonify(body), status

    # ------------------------------------------------------------------
    # Buyer payment
    # ------------------------------------------------------------------

    @bp.route("/create-payment-intent", methods=["POST"])
    def create_payment_intent():
        """Create a payment intent that transfers to the seller minus the platform fee."""
        body, status = handlers.create_payment_intent(ext, _json_body())
        return jsonify(body), status

    @bp.route("/config")
    def config():
        return jsonify(
            {"publishable_key": current_app.config["ENERGYTRADE_STRIPE_PUBLISHABLE_KEY"]}
        )

    # ------------------------------------------------------------------
    # Return targets for the hosted pages
    # ------------------------------------------------------------------

    @bp.route("/onboarding-complete")
    def onboarding_complete():
        """Landing page after the seller leaves hosted onboarding."""
        return jsonify({"status": "onboarding_complete"})

    @bp.route("/confirm")
    def confirm():
        """Landing page after the buyer confirms a payment."""
        return jsonify(
            {
                "status": "confirmed",
                "payment_intent": request.args.get("payment_intent") or None,
                "redirect_status": request.args.get("redirect_status") or None,
            }
        )

    return bp
