"""
HTTP entry point for Budget Pages.

Run with:
    uvicorn app.main:app
or:
    python -m app.main

Configuration comes from the environment / .env (see .env.example).
"""

import uvicorn

from budgetpages.api import create_app
from budgetpages.config import get_settings


app = create_app()


if __name__ == "__main__":
    settings = get_settings().app
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug_mode,
    )
