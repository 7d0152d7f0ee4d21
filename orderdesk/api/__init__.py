"""
HTTP layer: FastAPI routers and the access-control dependencies.
"""

from orderdesk.api import admin, analytics, menu, orders, user

routers = [
    admin.router,
    menu.router,
    orders.router,
    analytics.router,
    user.router,
]

__all__ = ["routers"]
