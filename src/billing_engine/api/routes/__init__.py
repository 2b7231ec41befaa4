"""API routes."""

from billing_engine.api.routes.health import router as health_router
from billing_engine.api.routes.lien_waivers import router as lien_waivers_router
from billing_engine.api.routes.pay_apps import router as pay_apps_router
from billing_engine.api.routes.reports import router as reports_router
from billing_engine.api.routes.sov import router as sov_router

__all__ = [
    "health_router",
    "lien_waivers_router",
    "pay_apps_router",
    "reports_router",
    "sov_router",
]
