"""Test doubles and builders shared across test modules."""

from budgetpages.agents.providers import ProviderAdapter
from budgetpages.models import AIProvider, AIResponse, Entry, Page


class FakeAgent:
    """Stands in for SummaryAgent: returns a canned reply or raises."""

    def __init__(self, response=None, error=None):
        self.response = response or AIResponse(
            summary="You spent steadily this week.",
            insights=["Food is your largest category"],
            recommendations=["Cook at home twice more"],
        )
        self.error = error
        self.calls = []

    async def generate(self, user, prompt, provider=None):
        self.calls.append({"user": user, "prompt": prompt, "provider": provider})
        if self.error is not None:
            raise self.error
        return self.response


class CannedAdapter(ProviderAdapter):
    """Provider adapter that answers every prompt with the same raw text."""

    def __init__(self, reply, provider=AIProvider.OPENAI):
        self.provider = provider
        self.reply = reply
        self.prompts = []

    async def submit(self, api_key, system_prompt, user_prompt):
        self.prompts.append(user_prompt)
        return self.reply


class FakeMailer:
    """Records weekly reports instead of sending them."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.sent = []

    async def send_weekly_report(self, recipient, data):
        if recipient in self.failing:
            raise RuntimeError("SMTP connection refused")
        self.sent.append((recipient, data))


def make_page(user_id, entries_by_day=None, **kwargs):
    """
    Page with the given entries.

    entries_by_day maps slot -> list of (title, amount, category).
    """
    page = Page(user_id=user_id, **kwargs)
    for slot, rows in (entries_by_day or {}).items():
        day = page.get_day(slot)
        for title, amount, category in rows:
            day.entries.append(Entry(title=title, amount=amount, category=category))
    return page
