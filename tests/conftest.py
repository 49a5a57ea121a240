"""
Shared fixtures for Expense Bot tests.

No real API calls: Gemini is replaced by FakeGeminiModel, storage by the
in-memory backend, and "now" by a fixed clock.
"""

from datetime import datetime
from typing import Optional

import pytest

from expense_bot.agents import CategoryClassifier, ClassificationError, IntentClassifier
from expense_bot.audit import AuditLogger
from expense_bot.config import GeminiSettings
from expense_bot.dates import DateRangeResolver
from expense_bot.formatter import ResponseFormatter
from expense_bot.ledger import CategoryNormalizer, LedgerMutator
from expense_bot.models.expense import ExpenseCategory
from expense_bot.orchestrator import IntentRouter
from expense_bot.queries import LedgerQueryEngine
from expense_bot.services.storage import InMemoryAuditStorage, InMemoryExpenseStorage


NOW = datetime(2026, 10, 19, 14, 30, 0)


class FakeResponse:
    def __init__(self, text: str):
        self.text = text


class FakeGeminiModel:
    """
    Stands in for genai.GenerativeModel.

    Answers are returned in order; the last one repeats. An Exception
    answer is raised instead of returned.
    """

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts: list[str] = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        answer = self.answers.pop(0) if len(self.answers) > 1 else self.answers[0]
        if isinstance(answer, Exception):
            raise answer
        return FakeResponse(answer)


class FakeCategoryClassifier:
    """Maps known words to categories; anything else is a failure."""

    def __init__(self, mapping: Optional[dict[str, ExpenseCategory]] = None):
        self.mapping = mapping or {}
        self.calls: list[str] = []

    async def classify_category(self, raw: str) -> ExpenseCategory:
        self.calls.append(raw)
        if raw.lower() in self.mapping:
            return self.mapping[raw.lower()]
        raise ClassificationError(f"no category for {raw!r}")


@pytest.fixture
def fake_model():
    return FakeGeminiModel


@pytest.fixture
def fake_categories() -> FakeCategoryClassifier:
    return FakeCategoryClassifier({
        "food": ExpenseCategory.FOOD,
        "lunch": ExpenseCategory.FOOD,
        "latte": ExpenseCategory.BEVERAGES,
        "coffee": ExpenseCategory.BEVERAGES,
        "uber": ExpenseCategory.TRANSPORT,
    })


@pytest.fixture
def gemini_settings() -> GeminiSettings:
    return GeminiSettings(api_key="test-key")


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def resolver(now) -> DateRangeResolver:
    return DateRangeResolver(clock=lambda: now)


@pytest.fixture
def storage() -> InMemoryExpenseStorage:
    return InMemoryExpenseStorage()


@pytest.fixture
def mutator(storage, resolver) -> LedgerMutator:
    """Mutator that stores categories exactly as written."""
    return LedgerMutator(storage, resolver, CategoryNormalizer(None))


@pytest.fixture
def query_engine(storage, resolver) -> LedgerQueryEngine:
    return LedgerQueryEngine(storage, resolver)


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def make_router(storage, resolver, gemini_settings, audit_storage):
    """Build a router whose intent classifier answers with the given texts."""

    def _make(*answers, category_classifier=None) -> IntentRouter:
        model = FakeGeminiModel(*answers)
        classifier = IntentClassifier(gemini_settings, model=model)
        router = IntentRouter(
            classifier=classifier,
            mutator=LedgerMutator(
                storage, resolver, CategoryNormalizer(category_classifier)
            ),
            query_engine=LedgerQueryEngine(storage, resolver),
            formatter=ResponseFormatter("₹"),
            audit_logger=AuditLogger(audit_storage),
        )
        router.fake_model = model
        return router

    return _make


@pytest.fixture
def category_classifier(gemini_settings):
    """A real CategoryClassifier driven by a fake model."""

    def _make(*answers) -> CategoryClassifier:
        return CategoryClassifier(gemini_settings, model=FakeGeminiModel(*answers))

    return _make
