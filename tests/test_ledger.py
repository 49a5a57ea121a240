"""
Tests for ledger mutations and category normalization.

Mutators run against the in-memory backend with a pinned clock
(2026-10-19 14:30).
"""

from datetime import datetime
from decimal import Decimal

import pytest

from expense_bot.exceptions import NotFoundError, ValidationError
from expense_bot.ledger import CategoryNormalizer, LedgerMutator
from expense_bot.models.expense import CategoryMatch, ExpenseItem, ExpenseRecord
from expense_bot.services.storage import InMemoryExpenseStorage, StorageError


class FlakyStorage(InMemoryExpenseStorage):
    """Fails create() for one category."""

    def __init__(self, failing_category: str):
        super().__init__()
        self.failing_category = failing_category

    async def create(self, record):
        if record.category == self.failing_category:
            raise StorageError("quota exceeded")
        return await super().create(record)


class TestCategoryNormalizer:
    @pytest.mark.asyncio
    async def test_maps_to_taxonomy(self, fake_categories):
        normalizer = CategoryNormalizer(fake_categories)
        assert await normalizer.normalize("latte") == "Beverages"

    @pytest.mark.asyncio
    async def test_falls_back_to_raw_text(self, fake_categories):
        """A failing classifier never loses the expense."""
        normalizer = CategoryNormalizer(fake_categories)
        assert await normalizer.normalize("dog grooming") == "dog grooming"

    @pytest.mark.asyncio
    async def test_without_classifier(self):
        assert await CategoryNormalizer(None).normalize("snacks") == "snacks"

    @pytest.mark.asyncio
    async def test_blank_is_not_sent_to_classifier(self, fake_categories):
        normalizer = CategoryNormalizer(fake_categories)
        assert await normalizer.normalize("  ") == "  "
        assert fake_categories.calls == []


class TestAddExpense:
    @pytest.mark.asyncio
    async def test_add_defaults_to_now(self, mutator, storage, now):
        result = await mutator.add_expense(Decimal("500"), "food")
        assert result.amount == Decimal("500")
        assert result.category == "food"
        assert result.timestamp == now
        assert await storage.count() == 1

    @pytest.mark.asyncio
    async def test_add_with_date(self, mutator, storage):
        result = await mutator.add_expense(Decimal("80"), "tea", "yesterday")
        assert result.timestamp == datetime(2026, 10, 18, 14, 30)

    @pytest.mark.asyncio
    async def test_add_normalizes_category(self, storage, resolver, fake_categories):
        mutator = LedgerMutator(storage, resolver, CategoryNormalizer(fake_categories))
        result = await mutator.add_expense(Decimal("250"), "latte")
        assert result.category == "Beverages"
        records = await storage.find()
        assert records[0].category == "Beverages"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "amount, category",
        [
            (None, "food"),
            (Decimal("500"), None),
            (Decimal("500"), "   "),
            (Decimal("0"), "food"),
            (Decimal("-5"), "food"),
        ],
    )
    async def test_add_rejects_incomplete(self, mutator, storage, amount, category):
        with pytest.raises(ValidationError):
            await mutator.add_expense(amount, category)
        assert await storage.count() == 0

    @pytest.mark.asyncio
    async def test_long_category_is_kept(self, mutator, storage):
        category = "birthday dinner for the whole team " * 5
        result = await mutator.add_expense(Decimal("4200"), category)
        assert result.category == category
        assert (await storage.find())[0].category == category


class TestAddExpenses:
    @pytest.mark.asyncio
    async def test_batch_shares_one_timestamp(self, mutator, storage):
        result = await mutator.add_expenses(
            [
                ExpenseItem(amount=Decimal("100"), category="coffee"),
                ExpenseItem(amount=Decimal("200"), category="chocolate"),
            ],
            "yesterday",
        )
        assert result.all_succeeded
        assert [item.category for item in result.added] == ["coffee", "chocolate"]
        assert {item.timestamp for item in result.added} == {result.timestamp}
        assert await storage.count() == 2

    @pytest.mark.asyncio
    async def test_invalid_item_does_not_stop_the_batch(self, mutator, storage):
        result = await mutator.add_expenses([
            ExpenseItem(amount=Decimal("100"), category="coffee"),
            ExpenseItem(amount=None, category="chocolate"),
            ExpenseItem(amount=Decimal("50"), category="cookies"),
        ])
        assert [item.category for item in result.added] == ["coffee", "cookies"]
        assert len(result.failed) == 1
        assert result.failed[0].category == "chocolate"
        assert await storage.count() == 2

    @pytest.mark.asyncio
    async def test_storage_failure_is_reported_per_item(self, resolver):
        storage = FlakyStorage(failing_category="chocolate")
        mutator = LedgerMutator(storage, resolver, CategoryNormalizer(None))

        result = await mutator.add_expenses([
            ExpenseItem(amount=Decimal("100"), category="coffee"),
            ExpenseItem(amount=Decimal("200"), category="chocolate"),
        ])

        assert not result.all_succeeded
        assert [item.category for item in result.added] == ["coffee"]
        assert "StorageError" in result.failed[0].reason
        # Items saved before the failure stay saved
        assert await storage.count() == 1

    @pytest.mark.asyncio
    async def test_empty_batch_rejected(self, mutator):
        with pytest.raises(ValidationError):
            await mutator.add_expenses([])


class TestEditExpense:
    @pytest.mark.asyncio
    async def test_edit_changes_amount_only(self, mutator, storage):
        added = await mutator.add_expense(Decimal("500"), "food")

        result = await mutator.edit_expense(Decimal("500"), "food", Decimal("600"))

        assert result.old_amount == Decimal("500")
        assert result.new_amount == Decimal("600")
        records = await storage.find()
        assert len(records) == 1
        assert records[0].amount == Decimal("600")
        assert records[0].category == "food"
        assert records[0].timestamp == added.timestamp

    @pytest.mark.asyncio
    async def test_edit_targets_most_recent_match(self, resolver):
        older = ExpenseRecord(
            amount=Decimal("500"), category="food", timestamp=datetime(2026, 10, 1)
        )
        newer = ExpenseRecord(
            amount=Decimal("500"), category="food", timestamp=datetime(2026, 10, 15)
        )
        storage = InMemoryExpenseStorage([older, newer])
        mutator = LedgerMutator(storage, resolver, CategoryNormalizer(None))

        result = await mutator.edit_expense(Decimal("500"), "food", Decimal("650"))

        assert result.timestamp == datetime(2026, 10, 15)
        amounts = {r.timestamp: r.amount for r in await storage.find()}
        assert amounts[datetime(2026, 10, 1)] == Decimal("500")
        assert amounts[datetime(2026, 10, 15)] == Decimal("650")

    @pytest.mark.asyncio
    async def test_exact_match_is_case_sensitive(self, storage, resolver, fake_categories):
        """'food' is stored as 'Food' after normalization; exact edit misses it."""
        mutator = LedgerMutator(storage, resolver, CategoryNormalizer(fake_categories))
        await mutator.add_expense(Decimal("500"), "food")

        with pytest.raises(NotFoundError):
            await mutator.edit_expense(Decimal("500"), "food", Decimal("600"))

    @pytest.mark.asyncio
    async def test_iexact_match_finds_normalized_record(
        self, storage, resolver, fake_categories
    ):
        mutator = LedgerMutator(
            storage,
            resolver,
            CategoryNormalizer(fake_categories),
            edit_match=CategoryMatch.IEXACT,
        )
        await mutator.add_expense(Decimal("500"), "food")

        result = await mutator.edit_expense(Decimal("500"), "food", Decimal("600"))
        assert result.category == "Food"
        assert result.new_amount == Decimal("600")

    @pytest.mark.asyncio
    async def test_edit_no_match(self, mutator, storage):
        await mutator.add_expense(Decimal("500"), "food")
        with pytest.raises(NotFoundError) as exc_info:
            await mutator.edit_expense(Decimal("999"), "food", Decimal("600"))
        assert exc_info.value.searched["amount"] == Decimal("999")
        assert (await storage.find())[0].amount == Decimal("500")

    @pytest.mark.asyncio
    async def test_edit_missing_fields(self, mutator):
        with pytest.raises(ValidationError) as exc_info:
            await mutator.edit_expense(Decimal("500"), None, None)
        assert exc_info.value.fields == ["old_category", "new_amount"]


class TestDeleteExpense:
    @pytest.mark.asyncio
    async def test_delete_today(self, mutator, storage):
        await mutator.add_expense(Decimal("300"), "groceries")
        result = await mutator.delete_expense(Decimal("300"), "groceries")
        assert result.category == "groceries"
        assert await storage.count() == 0

    @pytest.mark.asyncio
    async def test_delete_removes_one_of_identical_records(self, mutator, storage):
        await mutator.add_expense(Decimal("300"), "groceries", "yesterday")
        await mutator.add_expense(Decimal("300"), "groceries", "yesterday")

        await mutator.delete_expense(Decimal("300"), "groceries", "yesterday")

        assert await storage.count() == 1

    @pytest.mark.asyncio
    async def test_delete_only_looks_at_that_day(self, mutator, storage):
        await mutator.add_expense(Decimal("300"), "groceries", "yesterday")

        with pytest.raises(NotFoundError) as exc_info:
            await mutator.delete_expense(Decimal("300"), "groceries")

        assert exc_info.value.searched["start"] == datetime(2026, 10, 19)
        assert exc_info.value.searched["end"] == datetime(2026, 10, 20)
        assert await storage.count() == 1

    @pytest.mark.asyncio
    async def test_delete_requires_amount_and_category(self, mutator):
        with pytest.raises(ValidationError):
            await mutator.delete_expense(None, "groceries")
        with pytest.raises(ValidationError):
            await mutator.delete_expense(Decimal("300"), None)


class TestLedgerProperties:
    """Mutations as seen through the query engine."""

    @pytest.mark.asyncio
    async def test_add_edit_total(self, mutator, query_engine, resolver, storage):
        today = resolver.resolve_symbolic("today")

        await mutator.add_expense(Decimal("500"), "food")
        assert await query_engine.total(today, "food") == Decimal("500")

        await mutator.edit_expense(Decimal("500"), "food", Decimal("600"))
        assert await query_engine.total(category="food") == Decimal("600")
        assert all(r.amount != Decimal("500") for r in await storage.find())

    @pytest.mark.asyncio
    async def test_empty_store_totals_zero(self, query_engine):
        assert await query_engine.total() == Decimal("0")

    @pytest.mark.asyncio
    async def test_delete_missing_leaves_store_unchanged(self, mutator, storage):
        await mutator.add_expense(Decimal("300"), "groceries")
        with pytest.raises(NotFoundError):
            await mutator.delete_expense(Decimal("300"), "groceries", "yesterday")
        assert await storage.count() == 1

    @pytest.mark.asyncio
    async def test_batch_without_date_lands_on_today(self, mutator, storage, now):
        await mutator.add_expenses([
            ExpenseItem(amount=Decimal("100"), category="coffee"),
            ExpenseItem(amount=Decimal("200"), category="chocolate"),
        ])
        records = await storage.find()
        assert len(records) == 2
        assert {r.timestamp for r in records} == {now}
