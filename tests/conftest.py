"""
Shared fixtures.

No test talks to a real database, AI provider or mail server:
- MongoDB is mongomock behind the real storage classes
- The AI agent is a scripted fake
- The mailer records what it would have sent
"""

import os

from cryptography.fernet import Fernet

# Must be set before anything reads SecuritySettings.
os.environ.setdefault("SECURITY_ENCRYPTION_KEY", Fernet.generate_key().decode())

import mongomock
import pytest

from budgetpages.config import MongoSettings
from budgetpages.models import FixedExpense, User, UserSettings
from budgetpages.security import KeyCipher
from budgetpages.services.storage import (
    MongoClientWrapper,
    MongoFolderStorage,
    MongoPageStorage,
    MongoSummaryStorage,
    MongoUserStorage,
)

from tests.factories import FakeAgent, FakeMailer


@pytest.fixture
def cipher():
    return KeyCipher(os.environ["SECURITY_ENCRYPTION_KEY"])


@pytest.fixture
def budget_settings():
    return UserSettings(
        monthly_budget=3000,
        fixed_expenses=[FixedExpense(title="Rent", amount=1000)],
    )


@pytest.fixture
def user(budget_settings, cipher):
    return User(
        id="64b000000000000000000001",
        name="Asha",
        email="asha@example.com",
        ai_keys={"openai": cipher.encrypt("sk-test-openai")},
        settings=budget_settings,
    )


@pytest.fixture
def mongo_client():
    return MongoClientWrapper(settings=MongoSettings(), client=mongomock.MongoClient())


@pytest.fixture
def user_storage(mongo_client):
    return MongoUserStorage(mongo_client)


@pytest.fixture
def page_storage(mongo_client):
    return MongoPageStorage(mongo_client)


@pytest.fixture
def folder_storage(mongo_client, page_storage):
    return MongoFolderStorage(mongo_client, page_storage)


@pytest.fixture
def summary_storage(mongo_client):
    return MongoSummaryStorage(mongo_client)


@pytest.fixture
def fake_agent():
    return FakeAgent()


@pytest.fixture
def fake_mailer():
    return FakeMailer()
