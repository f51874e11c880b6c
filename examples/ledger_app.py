"""Flask app with the SQLAlchemy ledger and the Flask-Admin seller view.

Requires the admin extra::

    pip install "flask-energytrade[admin]"

Run with::

    python examples/ledger_app.py

Then:
  - Create sellers and payments through http://localhost:5000/api/...
  - Review sellers: http://localhost:5000/admin/connectedaccount/

The admin view has a "Sync from Stripe" bulk action.
"""

from flask import Flask
from flask_admin import Admin
from flask_sqlalchemy import SQLAlchemy

from flask_energytrade import DummyGateway, FlaskEnergyTrade
from flask_energytrade.contrib.sqla import ConnectedAccountModelView
from flask_energytrade.models import Base, ConnectedAccount

db = SQLAlchemy(model_class=Base)

app = Flask(__name__)
app.config["SECRET_KEY"] = "change-me-in-production"
app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///energytrade.db"

# DummyGateway: no credentials needed for local development.
ext = FlaskEnergyTrade(app, gateway=DummyGateway(), db=db)
db.init_app(app)

admin = Admin(app, name="Energy Trade Admin")
admin.add_view(ConnectedAccountModelView(ConnectedAccount, db.session, ext=ext, name="Sellers"))

with app.app_context():
    db.create_all()

if __name__ == "__main__":
    app.run(debug=True)
