"""Flask app serving the energytrade endpoints against Stripe Connect.

Run with::

    export STRIPE_SECRET_KEY=sk_test_...
    export STRIPE_PUBLISHABLE_KEY=pk_test_...
    export BASE_URL=http://localhost:5000
    python examples/energy_app.py

Leave ``STRIPE_SECRET_KEY`` unset to run against the in-memory DummyGateway.

Then use curl:

    # Create a seller
    curl -X POST http://localhost:5000/api/create-connected-account \\
         -H "Content-Type: application/json" \\
         -d '{"email": "seller@example.com", "first_name": "Anna", "last_name": "Muster"}'

    # Hosted onboarding link (replace ACCOUNT_ID)
    curl -X POST http://localhost:5000/api/create-account-link \\
         -H "Content-Type: application/json" \\
         -d '{"account_id": "ACCOUNT_ID"}'

    # Verification status
    curl "http://localhost:5000/api/connected-account-status?account_id=ACCOUNT_ID"

    # Pay the seller for 1000 kWh (20000 cents)
    curl -X POST http://localhost:5000/api/create-payment-intent \\
         -H "Content-Type: application/json" \\
         -d '{"amount": 20000, "receiver_email": "seller@example.com"}'
"""

import logging
import os

from flask import Flask

from flask_energytrade import DummyGateway, FlaskEnergyTrade

logging.basicConfig(level=logging.INFO)

app = Flask(__name__)

gateway = None if os.environ.get("STRIPE_SECRET_KEY") else DummyGateway()
ext = FlaskEnergyTrade(app, gateway=gateway)

if __name__ == "__main__":
    app.run(debug=True)
