"""Tests for reply rendering."""

from datetime import datetime
from decimal import Decimal

from expense_bot.exceptions import NotFoundError
from expense_bot.formatter import APOLOGY, ResponseFormatter
from expense_bot.models.expense import (
    AddedExpense,
    BatchAddResult,
    DeleteResult,
    EditResult,
    ExpenseRecord,
    FailedItem,
    ListResult,
    QueryType,
    TotalResult,
)


formatter = ResponseFormatter("₹")


class TestAmounts:
    def test_whole_amount(self):
        assert formatter.amount(Decimal("500")) == "₹500"

    def test_fractional_amount(self):
        assert formatter.amount(Decimal("80.5")) == "₹80.50"

    def test_thousands_separator(self):
        assert formatter.amount(Decimal("125000")) == "₹125,000"

    def test_other_currency(self):
        assert ResponseFormatter("$").amount(Decimal("12")) == "$12"


class TestSuccessReplies:
    def test_added(self):
        reply = formatter.added(AddedExpense(
            amount=Decimal("500"), category="Food", timestamp=datetime(2026, 10, 18, 14, 30)
        ))
        assert reply == "Saved expense: ₹500 on Food (18 Oct 2026)."

    def test_batch_partial(self):
        result = BatchAddResult(
            timestamp=datetime(2026, 10, 19),
            added=[AddedExpense(amount=Decimal("100"), category="Beverages", timestamp=datetime(2026, 10, 19))],
            failed=[FailedItem(amount=Decimal("200"), category="chocolate", reason="StorageError: quota")],
        )
        reply = formatter.batch_added(result)
        assert "Saved 1 expense(s) for 19 Oct 2026" in reply
        assert "- ₹100 on Beverages" in reply
        assert "- ₹200 on chocolate" in reply
        assert "quota" not in reply

    def test_batch_all_failed(self):
        result = BatchAddResult(
            timestamp=datetime(2026, 10, 19),
            failed=[FailedItem(amount=None, category="coffee", reason="ValidationError")],
        )
        assert formatter.batch_added(result).startswith("Sorry, I couldn't save any")

    def test_edited(self):
        reply = formatter.edited(EditResult(
            category="Food",
            old_amount=Decimal("500"),
            new_amount=Decimal("600"),
            timestamp=datetime(2026, 10, 19),
        ))
        assert "₹500 → ₹600" in reply

    def test_deleted(self):
        reply = formatter.deleted(DeleteResult(
            amount=Decimal("300"), category="Groceries", timestamp=datetime(2026, 10, 18)
        ))
        assert reply == "Deleted ₹300 spent on Groceries on 18 Oct 2026."


class TestTotals:
    def test_category_with_period(self):
        reply = formatter.total(TotalResult(
            query_type=QueryType.CATEGORY,
            total=Decimal("620"),
            category="food",
            period_label="this month",
        ))
        assert reply == "You have spent ₹620 on food this month."

    def test_overall_total(self):
        reply = formatter.total(TotalResult(query_type=QueryType.TOTAL, total=Decimal("2240")))
        assert reply == "Your total expenses so far: ₹2,240"

    def test_specific_day(self):
        reply = formatter.total(TotalResult(
            query_type=QueryType.DATE, total=Decimal("40"), day=datetime(2025, 2, 4)
        ))
        assert reply == "You spent ₹40 on 04 Feb 2025."

    def test_zero_is_rendered(self):
        reply = formatter.total(TotalResult(
            query_type=QueryType.TOTAL, total=Decimal("0"), period_label="today"
        ))
        assert reply == "You spent ₹0 today."


class TestListing:
    def test_empty(self):
        assert "haven't recorded" in formatter.listing(ListResult())

    def test_records(self):
        reply = formatter.listing(ListResult(records=[
            ExpenseRecord(amount=Decimal("500"), category="Food", timestamp=datetime(2026, 10, 19)),
        ]))
        assert "- 19 Oct 2026: ₹500 on Food" in reply


class TestGuidanceAndErrors:
    def test_guidance_has_example(self):
        assert "Spent ₹500 on food yesterday" in formatter.guidance()

    def test_help_lists_categories(self):
        assert "Groceries" in formatter.help()

    def test_missing_fields_per_intent(self):
        assert "amount and a category" in formatter.missing_fields("add_expense")
        assert "new amount" in formatter.missing_fields("edit_expense")
        assert formatter.missing_fields("list_all") == formatter.guidance()

    def test_not_found_for_delete_names_the_day(self):
        error = NotFoundError(
            "no match",
            searched={
                "amount": Decimal("300"),
                "category": "groceries",
                "start": datetime(2026, 10, 18),
                "end": datetime(2026, 10, 19),
            },
        )
        reply = formatter.not_found("delete_expense", error)
        assert reply == "I couldn't find an expense of ₹300 for groceries on 18 Oct 2026."

    def test_not_found_hides_internal_message(self):
        error = NotFoundError(
            "ExpenseFilter(amount=999) matched 0 rows",
            searched={"amount": Decimal("999"), "category": "food"},
        )
        reply = formatter.not_found("edit_expense", error)
        assert "ExpenseFilter" not in reply
        assert "₹999 for food" in reply

    def test_apology(self):
        assert formatter.apology() == APOLOGY
