"""Flask-Admin ModelView for the connected-account ledger.

Requires the ``admin`` extra::

    pip install "flask-energytrade[admin]"

Example::

    from flask import Flask
    from flask_sqlalchemy import SQLAlchemy
    from flask_admin import Admin
    from flask_energytrade import FlaskEnergyTrade
    from flask_energytrade.models import Base, ConnectedAccount
    from flask_energytrade.contrib.sqla import ConnectedAccountModelView

    db = SQLAlchemy(model_class=Base)

    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///energytrade.db"
    app.config["SECRET_KEY"] = "change-me"

    ext = FlaskEnergyTrade(app, db=db)
    db.init_app(app)

    admin = Admin(app, name="Energy Trade")
    admin.add_view(ConnectedAccountModelView(ConnectedAccount, db.session, ext=ext, name="Sellers"))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

try:
    from flask_admin.actions import action
    from flask_admin.contrib.sqla import ModelView
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "flask-admin and flask-sqlalchemy are required for "
        "flask_energytrade.contrib.sqla. "
        "Install them with: pip install 'flask-energytrade[admin]'"
    ) from exc

if TYPE_CHECKING:
    from flask_energytrade import FlaskEnergyTrade

logger = logging.getLogger(__name__)


class ConnectedAccountModelView(ModelView):
    """Read-only Flask-Admin view of the sellers created through the extension.

    Rows are created by ``POST /create-connected-account`` and their
    verification state is owned by the payment platform, so the view does not
    allow creating or editing them.  The **Sync from Stripe** bulk action
    re-reads each selected account and stores its transfers state and payouts
    flag.

    Args:
        model: :class:`~flask_energytrade.models.ConnectedAccount` or a model
            using :class:`~flask_energytrade.models.ConnectedAccountMixin`.
        session: A SQLAlchemy scoped session (e.g. ``db.session``).
        ext: The :class:`~flask_energytrade.FlaskEnergyTrade` instance; the
            sync action needs its gateway.
    """

    column_list = [
        "account_id",
        "email",
        "transfers_state",
        "payouts_enabled",
        "external_account_id",
        "created_at",
        "updated_at",
    ]
    column_searchable_list = ["account_id", "email"]
    column_filters = ["transfers_state", "payouts_enabled"]
    column_default_sort = ("created_at", True)

    can_create = False
    can_edit = False
    can_delete = False
    can_view_details = True

    def __init__(self, model, session, *, ext: "FlaskEnergyTrade | None" = None, **kwargs: Any) -> None:
        self._ext = ext
        super().__init__(model, session, **kwargs)

    @action("sync", "Sync from Stripe", "Refresh the selected accounts from the payment platform?")
    def action_sync(self, ids: list[str]) -> None:
        """Fetch live capability state for each selected account."""
        from flask import flash

        from flask_energytrade.handlers import narrow_account

        if self._ext is None:
            flash("FlaskEnergyTrade extension not configured; cannot sync.", "danger")
            return

        count = 0
        failed = []
        for pk in ids:
            record = self.get_one(pk)
            if record is None:
                continue
            try:
                account = self._ext.gateway.retrieve_account(record.account_id)
            except Exception as exc:
                logger.warning("sync of %s failed: %s", record.account_id, exc)
                failed.append(record.account_id)
                continue
            try:
                self._ext.update_account_status(record.account_id, narrow_account(account))
            except Exception as exc:
                self.session.rollback()
                flash(f"Failed to sync accounts: {exc}", "danger")
                return
            count += 1

        flash(f"{count} account(s) synced from Stripe.", "success")
        if failed:
            flash(f"Could not sync: {', '.join(failed)}", "warning")
