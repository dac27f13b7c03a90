"""
Prompt and Fallback Text Construction

Builds the natural-language prompts sent to the AI and the rule-based
summaries shown when the AI is unavailable.

DESIGN DECISION: Prompts only embed numbers the calculator produced.
The AI is asked to interpret them, never to compute them. Everything
here is deterministic string building over calculator output.
"""

from typing import Iterable, Optional, Sequence

from budgetpages.agents.errors import ErrorKind
from budgetpages.budget.calculator import (
    BudgetFigures,
    ReportSummary,
    ScopedEntry,
    SpendingSummary,
    is_over_budget,
    sorted_by_amount,
)
from budgetpages.models import (
    AIResponse,
    AISummary,
    Page,
    SummaryType,
    UserSettings,
    weekday_name,
)


DEFAULT_CURRENCY = "₹"
RECENT_ENTRY_LIMIT = 10

RATE_LIMIT_GUIDANCE = "⚠️ AI rate limit reached. Wait a few minutes or try a different provider"
KEY_GUIDANCE = "Set up your AI API key in Settings > AI Keys for detailed insights"
UNAVAILABLE_GUIDANCE = "AI service unavailable. Try again later or use a different provider"


def currency_of(settings: UserSettings) -> str:
    return settings.currency or DEFAULT_CURRENCY


def money(amount: float, currency: str) -> str:
    return f"{currency}{amount:.2f}"


def day_label(slot: int) -> str:
    return f"Day {slot} ({weekday_name(slot)})"


def guidance_for(kind: Optional[ErrorKind]) -> str:
    """User-facing next step for a failed AI call."""
    if kind == ErrorKind.RATE_LIMITED:
        return RATE_LIMIT_GUIDANCE
    if kind is not None and kind.is_key_problem:
        return KEY_GUIDANCE
    return UNAVAILABLE_GUIDANCE


def _bullets(lines: Iterable[str], empty: str = "None") -> str:
    rendered = "\n".join(f"- {line}" for line in lines)
    return rendered or empty


def _fixed_expense_lines(settings: UserSettings, currency: str) -> str:
    if not settings.fixed_expenses:
        return "No fixed budgets set"
    blocks = []
    for expense in settings.fixed_expenses:
        tags = ", ".join(expense.tags) if expense.tags else "None"
        blocks.append(
            f"- **{expense.title}**: {money(expense.amount, currency)}\n"
            f"  Description: {expense.description or 'N/A'}\n"
            f"  Category: {expense.category or 'N/A'}\n"
            f"  Tags: {tags}"
        )
    return "\n".join(blocks)


def build_daily_prompt(
    settings: UserSettings,
    budget: BudgetFigures,
    summary: SpendingSummary,
    entries: Sequence[ScopedEntry],
) -> str:
    currency = currency_of(settings)
    fixed = ", ".join(
        f"{e.title}: {money(e.amount, currency)}" for e in settings.fixed_expenses
    ) or "None"
    categories = _bullets(
        f"{cat}: {money(amount, currency)}"
        for cat, amount in summary.entries_by_category.items()
    )
    recent = _bullets(
        f"{e.title}: {money(e.amount, currency)} ({e.category})"
        for e in entries[-RECENT_ENTRY_LIMIT:]
    )

    return f"""
Analyze this daily financial data:

Total Spent Today: {money(summary.total_spent, currency)}
Monthly Budget: {money(budget.monthly_budget, currency)}
Fixed Expenses: {fixed}
Daily Budget Target (after fixed expenses): {money(budget.daily_budget, currency)}

Spending by Category:
{categories}

Recent Entries:
{recent}

Please provide insights on spending patterns, warnings if over budget, and savings recommendations.
"""


def build_day_comparison_prompt(
    settings: UserSettings,
    budget: BudgetFigures,
    page: Page,
    slots: Sequence[int],
) -> str:
    """
    Prompt for one day of one page, compared with the two days before it.

    ``slots[0]`` is the day being summarized; the rest are the earlier
    days in wrap-around order.
    """
    currency = currency_of(settings)
    sections = []
    for position, slot in enumerate(slots):
        day = page.get_day(slot)
        entries = day.entries if day else []
        total = sum(e.amount for e in entries)
        heading = "Current Day" if position == 0 else f"{position} day(s) before"
        lines = _bullets(
            (
                f"{e.title}: {money(e.amount, currency)} ({e.category or 'Uncategorized'})"
                for e in entries
            ),
            empty="No entries",
        )
        sections.append(
            f"{heading} - {day_label(slot)}: {money(total, currency)}\n{lines}"
        )
    days_text = "\n\n".join(sections)

    return f"""
Analyze this day's spending on the page "{page.title}" and compare it with the previous days:

Daily Budget Target (after fixed expenses): {money(budget.daily_budget, currency)}
Monthly Budget: {money(budget.monthly_budget, currency)}
Fixed Monthly Expenses Total: {money(budget.fixed_expenses_total, currency)}

{days_text}

Please point out how today compares with the previous days, warn if today is over the daily target, and suggest savings.
"""


def build_weekly_prompt(
    settings: UserSettings,
    budget: BudgetFigures,
    summary: SpendingSummary,
) -> str:
    currency = currency_of(settings)
    by_day = _bullets(
        f"{day_label(slot)}: {money(amount, currency)}"
        for slot, amount in summary.entries_by_day.items()
    )
    by_category = _bullets(
        f"{cat}: {money(amount, currency)}"
        for cat, amount in summary.entries_by_category.items()
    )
    if summary.top_day:
        highest = f"{day_label(summary.top_day[0])} ({money(summary.top_day[1], currency)})"
    else:
        highest = f"N/A ({money(0, currency)})"
    if summary.top_category:
        top_category = f"{summary.top_category[0]} ({money(summary.top_category[1], currency)})"
    else:
        top_category = f"N/A ({money(0, currency)})"

    return f"""
Analyze this weekly financial data:

Total Spent This Week: {money(summary.total_spent, currency)}
Monthly Budget (Total): {money(budget.monthly_budget, currency)}
Fixed Monthly Expenses Total: {money(budget.fixed_expenses_total, currency)}
Available Monthly Budget (After Fixed Expenses): {money(budget.available_monthly_budget, currency)}
Weekly Budget Target (Available Budget ÷ 4): {money(budget.weekly_budget, currency)}

Fixed Monthly Budgets/Expenses (Detailed):
{_fixed_expense_lines(settings, currency)}

Spending by Day:
{by_day}

Spending by Category:
{by_category}

Highest Spending Day: {highest}
Top Category: {top_category}

Number of Transactions: {summary.entry_count}
Average Daily Spending: {money(summary.average_daily, currency)}

Please provide a comprehensive weekly analysis with:
1. Overall spending assessment
2. Pattern recognition across days
3. Category-wise insights comparing actual spending vs fixed budgets
4. Budget warnings if applicable (check against budget categories and tags)
5. Specific savings recommendations based on budget descriptions
6. Analysis of which budget categories are on track or exceeded
"""


def build_report_prompt(
    user_name: str,
    settings: UserSettings,
    budget: BudgetFigures,
    report: ReportSummary,
) -> str:
    """Prompt for the narrative section of the weekly email."""
    currency = currency_of(settings)
    difference = report.week_total - budget.weekly_budget
    status = "Over budget by" if difference > 0 else "Under budget by"
    categories = _bullets(
        f"{cat}: {money(amount, currency)}"
        for cat, amount in sorted_by_amount(report.categories_breakdown)
    )
    daily = _bullets(
        f"{day}: {money(amount, currency)}"
        for day, amount in report.daily_breakdown.items()
    )
    top_day, top_amount = report.top_spending_day

    return f"""
Analyze this weekly financial data and provide insights:

User: {user_name}
Monthly Budget: {money(budget.monthly_budget, currency)}
Fixed Expenses: {money(budget.fixed_expenses_total, currency)}
Real Monthly Budget: {money(budget.available_monthly_budget, currency)}
Weekly Budget: {money(budget.weekly_budget, currency)}

This Week's Spending: {money(report.week_total, currency)}
Status: {status} {money(abs(difference), currency)}

Category Breakdown:
{categories}

Daily Breakdown:
{daily}

Top Spending Day: {top_day} ({money(top_amount, currency)})
Average Daily Spending: {money(report.average_daily_spending, currency)}

Please provide a brief weekly analysis including:
- Spending patterns and observations
- Warnings if overspending detected
- How much the user should spend per day next week to stay on track
- Predicted budget status for next week
- Any alerts or recommendations

Keep the response concise and actionable (4-6 bullet points).
"""


def format_analysis(response: AIResponse) -> str:
    """Render an AI reply as the plain-text bullets used in email."""
    parts = []
    if response.summary:
        parts.append(response.summary)
    if response.insights:
        parts.append("Key Insights:\n" + "\n".join(f"• {i}" for i in response.insights))
    if response.recommendations:
        parts.append(
            "Recommendations:\n" + "\n".join(f"• {r}" for r in response.recommendations)
        )
    return "\n\n".join(parts).strip()


def fallback_report_analysis(
    currency: str,
    budget: BudgetFigures,
    report: ReportSummary,
) -> str:
    is_over = is_over_budget(report.week_total, budget, SummaryType.WEEKLY)
    ranked = sorted_by_amount(report.categories_breakdown)
    top_category = ranked[0][0] if ranked else "N/A"
    lines = [
        f"• You spent {money(report.week_total, currency)} this week "
        f"({'over' if is_over else 'under'} budget).",
        f"• Your top spending category was {top_category}.",
        f"• To stay on track next week, aim to spend around "
        f"{money(budget.daily_safe_spend, currency)} per day.",
        "• ⚠️ Warning: You're currently overspending. Consider reducing discretionary expenses."
        if is_over else
        "• ✓ Great job staying within budget! Keep it up.",
    ]
    return "\n".join(lines)


def fallback_daily(
    user_id: str,
    date_key: str,
    settings: UserSettings,
    budget: BudgetFigures,
    summary: SpendingSummary,
    kind: Optional[ErrorKind],
) -> AISummary:
    """Rule-based daily summary, marked degraded."""
    currency = currency_of(settings)
    total = summary.total_spent
    if is_over_budget(total, budget, SummaryType.DAILY):
        verdict = "⚠️ This is above your daily average budget!"
    else:
        verdict = "You're within your daily budget."
    top_category = summary.top_category[0] if summary.top_category else "N/A"

    return AISummary(
        user_id=user_id,
        date=date_key,
        type=SummaryType.DAILY,
        summary=f"You spent {money(total, currency)} today. {verdict}",
        total_spent=total,
        insights=[
            f"Total spending: {money(total, currency)}",
            f"Daily budget target: {money(budget.daily_budget, currency)}",
            f"Top category: {top_category}",
        ],
        recommendations=[
            guidance_for(kind),
            "Track your spending consistently for better analysis",
        ],
        degraded=True,
    )


def fallback_weekly(
    user_id: str,
    date_key: str,
    settings: UserSettings,
    budget: BudgetFigures,
    summary: SpendingSummary,
    kind: Optional[ErrorKind],
) -> AISummary:
    """Rule-based weekly summary, marked degraded."""
    currency = currency_of(settings)
    total = summary.total_spent
    is_over = is_over_budget(total, budget, SummaryType.WEEKLY)
    if is_over:
        verdict = "⚠️ You've exceeded your weekly budget!"
    else:
        verdict = "You're within your weekly budget."
    highest = day_label(summary.top_day[0]) if summary.top_day else "N/A"
    top_category = summary.top_category[0] if summary.top_category else "N/A"

    return AISummary(
        user_id=user_id,
        date=date_key,
        type=SummaryType.WEEKLY,
        summary=f"Weekly total: {money(total, currency)}. {verdict}",
        total_spent=total,
        insights=[
            f"Total weekly spending: {money(total, currency)}",
            f"Monthly budget: {money(budget.monthly_budget, currency)}",
            f"Fixed expenses: {money(budget.fixed_expenses_total, currency)}",
            f"Available budget: {money(budget.available_monthly_budget, currency)}/month",
            f"Weekly budget target: {money(budget.weekly_budget, currency)}",
            f"Highest spending day: {highest}",
            f"Top category: {top_category}",
        ],
        recommendations=[
            guidance_for(kind),
            "Consider reducing discretionary spending next week"
            if is_over else
            "Keep up the good budgeting!",
        ],
        degraded=True,
    )


def no_data_weekly(user_id: str, date_key: str) -> AISummary:
    """Returned instead of calling the AI when the week has no entries."""
    return AISummary(
        user_id=user_id,
        date=date_key,
        type=SummaryType.WEEKLY,
        summary="No spending data available for this week. Start tracking your expenses!",
        total_spent=0.0,
        insights=["No transactions recorded this week"],
        recommendations=["Start adding your daily expenses to track your spending"],
    )
