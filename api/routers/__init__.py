"""
FastAPI routers grouped by screen (pages, auth, cards, card editing).

Each file inside this package exposes an APIRouter that is included in the
public application (app.py). The admin console lives in admin_app.py.
"""
