"""HTTP routers, one module per resource."""

from budgetpages.api.routes import cron, folders, pages, summaries, users

ROUTERS = [
    summaries.router,
    cron.router,
    folders.router,
    pages.router,
    users.router,
]

__all__ = ["ROUTERS"]
