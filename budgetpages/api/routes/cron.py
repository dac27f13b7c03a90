"""Scheduled jobs, triggered by an external scheduler over HTTP."""

from typing import Optional

from fastapi import APIRouter, Depends, Header

from budgetpages.api.deps import UnauthorizedError, get_components
from budgetpages.config import get_settings
from budgetpages.orchestrator import AppComponents


router = APIRouter(prefix="/cron", tags=["cron"])


def verify_cron_secret(authorization: Optional[str] = Header(default=None)) -> None:
    """Open when no secret is configured; otherwise require the bearer token."""
    secret = get_settings().security.cron_secret
    if secret and authorization != f"Bearer {secret}":
        raise UnauthorizedError("Unauthorized")


@router.get("/weekly-email", dependencies=[Depends(verify_cron_secret)])
async def weekly_email(components: AppComponents = Depends(get_components)):
    report = await components.report_job.run()
    return {
        "message": "Weekly emails processed",
        "results": report.to_document(),
    }
