"""
Main Orchestrator for Budget Pages

This module ties together storage, the budget calculator, the AI agent
and the mailer, and defines the end-to-end flows for:
1. Daily summary (scope → numbers → prompt → AI → store)
2. Weekly summary (same, with an empty-week short circuit)
3. Weekly email report (every opted-in user → numbers → AI → mail)

DESIGN DECISION: The orchestrator enforces the boundaries:
- All arithmetic happens in the calculator, before the AI is called
- An AI failure never fails the request; the user gets a rule-based
  summary flagged ``degraded`` and it is NOT stored
- Only real AI summaries are persisted, one per (user, date, type)
- One user's failure never stops the weekly report run
"""

from datetime import date, datetime, timedelta
from typing import Callable, Optional

from budgetpages.agents import AIGenerationError, SummaryAgent
from budgetpages.budget.calculator import (
    BudgetFigures,
    SpendingSummary,
    build_report_summary,
    collect_entries,
    comparison_slots,
    compute_budget,
    summarize,
    summary_date_key,
)
from budgetpages.budget.prompts import (
    build_daily_prompt,
    build_day_comparison_prompt,
    build_report_prompt,
    build_weekly_prompt,
    currency_of,
    fallback_daily,
    fallback_report_analysis,
    fallback_weekly,
    format_analysis,
    no_data_weekly,
)
from budgetpages.config import AppSettings, get_settings
from budgetpages.log import get_logger
from budgetpages.models import (
    DAYS_PER_PAGE,
    AISummary,
    CronReport,
    Page,
    SummaryType,
    User,
)
from budgetpages.services.email import SMTPMailer, WeeklyEmailData
from budgetpages.services.storage import (
    FolderStorageInterface,
    MongoClientWrapper,
    MongoFolderStorage,
    MongoPageStorage,
    MongoSummaryStorage,
    MongoUserStorage,
    PageStorageInterface,
    SummaryStorageInterface,
    UserStorageInterface,
)


logger = get_logger(__name__)

FallbackBuilder = Callable[..., AISummary]


class FlowError(Exception):
    """Base exception for request-level failures."""
    pass


class ValidationError(FlowError):
    """Request fields are missing or out of range."""
    pass


class UserNotFoundError(FlowError):
    pass


class PageNotFoundError(FlowError):
    pass


class DayNotFoundError(FlowError):
    pass


class FolderNotFoundError(FlowError):
    pass


class SummaryFlow:
    """
    Orchestrates on-demand AI summaries.

    Flow:
    1. Load the user (settings snapshot + encrypted keys)
    2. Load the scope of pages and flatten entries
    3. Compute totals and budget figures
    4. Build the prompt and ask the agent
    5. Success → upsert and return the stored summary
       Failure → return a degraded rule-based summary
    """

    def __init__(
        self,
        user_storage: UserStorageInterface,
        page_storage: PageStorageInterface,
        summary_storage: SummaryStorageInterface,
        agent: Optional[SummaryAgent] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._users = user_storage
        self._pages = page_storage
        self._summaries = summary_storage
        self._agent = agent or SummaryAgent()
        self._settings = settings or get_settings().app

    async def _require_user(self, email: str) -> User:
        user = await self._users.get_by_email(email)
        if user is None:
            raise UserNotFoundError("User not found")
        return user

    async def generate_daily(
        self,
        email: str,
        provider: Optional[str] = None,
        page_id: Optional[str] = None,
        day_index: Optional[int] = None,
        today: Optional[date] = None,
    ) -> AISummary:
        """
        Daily summary.

        Without ``page_id``/``day_index`` the scope is every entry on
        every page. With both, the scope is one day of one page and the
        prompt compares it with the two days before it.

        Raises:
            UserNotFoundError, ValidationError, PageNotFoundError,
            DayNotFoundError
        """
        if (page_id is None) != (day_index is None):
            raise ValidationError("pageId and dayIndex must be provided together")

        user = await self._require_user(email)
        date_key = summary_date_key(SummaryType.DAILY, today or date.today())
        budget = compute_budget(user.settings)

        if page_id is not None:
            page = await self._pages.get_page(user.id, page_id)
            if page is None:
                raise PageNotFoundError("Page not found")
            if not 0 <= day_index <= DAYS_PER_PAGE:
                raise DayNotFoundError("Day not found")
            slots = comparison_slots(day_index)
            if page.get_day(slots[0]) is None:
                raise DayNotFoundError("Day not found")
            spending = summarize(collect_entries([page], [slots[0]]))
            prompt = build_day_comparison_prompt(user.settings, budget, page, slots)
        else:
            pages = await self._pages.list_pages(user.id)
            entries = collect_entries(pages)
            spending = summarize(entries)
            prompt = build_daily_prompt(user.settings, budget, spending, entries)

        return await self._generate(
            user, SummaryType.DAILY, date_key, prompt, provider,
            budget, spending, fallback_daily,
        )

    async def generate_weekly(
        self,
        email: str,
        provider: Optional[str] = None,
        today: Optional[date] = None,
    ) -> AISummary:
        """
        Weekly summary keyed by the most recent Sunday.

        A week without entries returns the no-data summary without
        calling the AI or storing anything.
        """
        user = await self._require_user(email)
        date_key = summary_date_key(SummaryType.WEEKLY, today or date.today())

        pages = await self._weekly_scope(user)
        spending = summarize(collect_entries(pages))
        if spending.is_empty:
            logger.info("weekly_summary_no_data", user_id=user.id, date=date_key)
            return no_data_weekly(user.id, date_key)

        budget = compute_budget(user.settings)
        prompt = build_weekly_prompt(user.settings, budget, spending)
        return await self._generate(
            user, SummaryType.WEEKLY, date_key, prompt, provider,
            budget, spending, fallback_weekly,
        )

    async def _weekly_scope(self, user: User) -> list[Page]:
        window = self._settings.weekly_summary_window_days
        if window is None:
            return await self._pages.list_pages(user.id)
        since = datetime.utcnow() - timedelta(days=window)
        return await self._pages.list_pages_updated_since(user.id, since)

    async def _generate(
        self,
        user: User,
        summary_type: SummaryType,
        date_key: str,
        prompt: str,
        provider: Optional[str],
        budget: BudgetFigures,
        spending: SpendingSummary,
        fallback: FallbackBuilder,
    ) -> AISummary:
        try:
            response = await self._agent.generate(user, prompt, provider)
        except AIGenerationError as e:
            logger.warning(
                "ai_generation_failed",
                user_id=user.id,
                summary_type=summary_type.value,
                provider=e.provider,
                kind=e.kind.value,
                error=str(e),
            )
            return fallback(user.id, date_key, user.settings, budget, spending, e.kind)

        stored = await self._summaries.upsert_summary(AISummary(
            user_id=user.id,
            date=date_key,
            type=summary_type,
            summary=response.summary,
            total_spent=spending.total_spent,
            insights=response.insights,
            recommendations=response.recommendations,
        ))
        logger.info(
            "summary_saved",
            user_id=user.id,
            summary_type=summary_type.value,
            date=date_key,
        )
        return stored

    async def list_summaries(
        self,
        email: str,
        summary_type: SummaryType,
        limit: Optional[int] = None,
    ) -> list[AISummary]:
        """Stored summaries, newest first."""
        user = await self._require_user(email)
        if limit is None:
            if summary_type == SummaryType.WEEKLY:
                limit = self._settings.default_weekly_summary_limit
            else:
                limit = self._settings.default_daily_summary_limit
        return await self._summaries.list_summaries(user.id, summary_type, limit)


class WeeklyReportJob:
    """
    Sends the weekly email to every opted-in user.

    Users are processed one at a time. Any failure for one user is
    logged and counted, and the run moves on to the next user.
    """

    def __init__(
        self,
        user_storage: UserStorageInterface,
        page_storage: PageStorageInterface,
        agent: Optional[SummaryAgent] = None,
        mailer: Optional[SMTPMailer] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._users = user_storage
        self._pages = page_storage
        self._agent = agent or SummaryAgent()
        self._mailer = mailer or SMTPMailer()
        self._settings = settings or get_settings().app

    async def run(self, now: Optional[datetime] = None) -> CronReport:
        now = now or datetime.utcnow()
        since = now - timedelta(days=self._settings.report_window_days)

        recipients = await self._users.list_weekly_report_recipients()
        report = CronReport(total=len(recipients))
        logger.info("weekly_report_started", recipients=report.total)

        for user in recipients:
            try:
                await self.send_report(user, since)
            except Exception as e:
                report.failed += 1
                report.errors.append(f"Failed for {user.email}: {e}")
                logger.error("weekly_report_failed", email=user.email, error=str(e))
            else:
                report.success += 1

        logger.info(
            "weekly_report_finished",
            total=report.total,
            success=report.success,
            failed=report.failed,
        )
        return report

    async def send_report(self, user: User, since: datetime) -> WeeklyEmailData:
        pages = await self._pages.list_pages_updated_since(user.id, since)
        summary = build_report_summary(pages)
        budget = compute_budget(user.settings)
        currency = currency_of(user.settings)

        try:
            response = await self._agent.generate(
                user,
                build_report_prompt(user.name, user.settings, budget, summary),
            )
            analysis = format_analysis(response)
        except AIGenerationError as e:
            logger.warning(
                "ai_generation_failed",
                user_id=user.id,
                summary_type="report",
                kind=e.kind.value,
                error=str(e),
            )
            analysis = fallback_report_analysis(currency, budget, summary)

        difference = summary.week_total - budget.weekly_budget
        data = WeeklyEmailData(
            user_name=user.name,
            currency=currency,
            monthly_budget=budget.monthly_budget,
            fixed_expenses_total=budget.fixed_expenses_total,
            real_monthly_budget=budget.available_monthly_budget,
            weekly_budget=budget.weekly_budget,
            week_total=summary.week_total,
            difference=difference,
            is_over_budget=difference > 0,
            ai_analysis=analysis,
        )
        await self._mailer.send_weekly_report(user.email, data)
        return data


class AppComponents:
    """Everything the HTTP layer needs, built once at startup."""

    def __init__(
        self,
        users: UserStorageInterface,
        folders: FolderStorageInterface,
        pages: PageStorageInterface,
        summaries: SummaryStorageInterface,
        summary_flow: SummaryFlow,
        report_job: WeeklyReportJob,
        mongo_client: Optional[MongoClientWrapper] = None,
    ):
        self.users = users
        self.folders = folders
        self.pages = pages
        self.summaries = summaries
        self.summary_flow = summary_flow
        self.report_job = report_job
        self.mongo_client = mongo_client


def create_app_components(
    mongo_client: Optional[MongoClientWrapper] = None,
    agent: Optional[SummaryAgent] = None,
    mailer: Optional[SMTPMailer] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        mongo_client: Shared MongoDB client; a new one from settings
                      when omitted. Pass one wrapping mongomock in tests.
        agent: AI agent; the default dispatches to real providers.
        mailer: Weekly report mailer; SMTP from settings by default.
    """
    mongo_client = mongo_client or MongoClientWrapper()
    agent = agent or SummaryAgent()

    users = MongoUserStorage(mongo_client)
    pages = MongoPageStorage(mongo_client)
    folders = MongoFolderStorage(mongo_client, pages)
    summaries = MongoSummaryStorage(mongo_client)

    return AppComponents(
        users=users,
        folders=folders,
        pages=pages,
        summaries=summaries,
        summary_flow=SummaryFlow(users, pages, summaries, agent=agent),
        report_job=WeeklyReportJob(users, pages, agent=agent, mailer=mailer),
        mongo_client=mongo_client,
    )
