"""Quart async app serving the energytrade endpoints.

Requires the quart extra::

    pip install "flask-energytrade[quart]"

Run with::

    python examples/quart_energy_app.py

The endpoints are the same as in ``energy_app.py``.
"""

from quart import Quart

from flask_energytrade import DummyGateway, FlaskEnergyTrade

app = Quart(__name__)

# FlaskEnergyTrade detects Quart and registers the async blueprint automatically
ext = FlaskEnergyTrade(app, gateway=DummyGateway())

if __name__ == "__main__":
    app.run(debug=True)
