"""AI summary routes: generate and list daily/weekly summaries."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from budgetpages.api.deps import get_components, get_current_email
from budgetpages.api.schemas import DailySummaryRequest, WeeklySummaryRequest
from budgetpages.models import SummaryType
from budgetpages.orchestrator import AppComponents


router = APIRouter(prefix="/ai/summary", tags=["summaries"])


@router.post("/daily")
async def create_daily_summary(
    body: Optional[DailySummaryRequest] = None,
    email: str = Depends(get_current_email),
    components: AppComponents = Depends(get_components),
):
    body = body or DailySummaryRequest()
    summary = await components.summary_flow.generate_daily(
        email,
        provider=body.provider,
        page_id=body.page_id,
        day_index=body.day_index,
    )
    return summary.to_document()


@router.get("/daily")
async def list_daily_summaries(
    limit: Optional[int] = Query(default=None, ge=1),
    email: str = Depends(get_current_email),
    components: AppComponents = Depends(get_components),
):
    summaries = await components.summary_flow.list_summaries(email, SummaryType.DAILY, limit)
    return [s.to_document() for s in summaries]


@router.post("/weekly")
async def create_weekly_summary(
    body: Optional[WeeklySummaryRequest] = None,
    email: str = Depends(get_current_email),
    components: AppComponents = Depends(get_components),
):
    body = body or WeeklySummaryRequest()
    summary = await components.summary_flow.generate_weekly(email, provider=body.provider)
    return summary.to_document()


@router.get("/weekly")
async def list_weekly_summaries(
    limit: Optional[int] = Query(default=None, ge=1),
    email: str = Depends(get_current_email),
    components: AppComponents = Depends(get_components),
):
    summaries = await components.summary_flow.list_summaries(email, SummaryType.WEEKLY, limit)
    return [s.to_document() for s in summaries]
