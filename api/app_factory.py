"""ASGI entry points: ``api.app_factory:public_app`` and ``api.app_factory:admin_app``."""
from api.admin_app import app as admin_app, create_admin_app
from api.app import app as public_app, create_app

__all__ = ["public_app", "admin_app", "create_app", "create_admin_app"]
