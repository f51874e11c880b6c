"""Optional integrations (Flask-Admin)."""
