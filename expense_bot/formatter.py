"""
Response Formatting

Renders ledger results into the text sent back over WhatsApp.

CRITICAL: Nothing rendered here may contain internal error detail
(exception messages, stack traces, LLM payloads). Errors are described
only by what the user asked for; the detail goes to the logs.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from expense_bot.exceptions import NotFoundError
from expense_bot.models.expense import (
    AddedExpense,
    BatchAddResult,
    DeleteResult,
    EditResult,
    ExpenseCategory,
    ListResult,
    QueryType,
    TotalResult,
)


APOLOGY = "Sorry, something went wrong on my side. Please try again in a moment."

GREETING = "Hi! How can I help you track your expenses today?"

GOODBYE = "Goodbye! Stay on top of your finances."

ADD_EXAMPLE = "Spent {c}500 on food yesterday"


def _day(moment: datetime) -> str:
    return moment.strftime("%d %b %Y")


class ResponseFormatter:
    """Turns results into user-facing text. Holds no request state."""

    def __init__(self, currency_symbol: str = "₹"):
        self._currency = currency_symbol

    def amount(self, value: Optional[Decimal]) -> str:
        """₹500 for whole amounts, ₹80.50 otherwise, with thousands separators."""
        if value is None:
            return f"{self._currency}?"
        if value == value.to_integral_value():
            return f"{self._currency}{value:,.0f}"
        return f"{self._currency}{value:,.2f}"

    # -------------------------------------------------------------------------
    # Success replies
    # -------------------------------------------------------------------------

    def added(self, result: AddedExpense) -> str:
        return (
            f"Saved expense: {self.amount(result.amount)} on {result.category} "
            f"({_day(result.timestamp)})."
        )

    def batch_added(self, result: BatchAddResult) -> str:
        lines = []
        if result.added:
            lines.append(f"Saved {len(result.added)} expense(s) for {_day(result.timestamp)}:")
            lines.extend(
                f"- {self.amount(item.amount)} on {item.category}" for item in result.added
            )
        if result.failed:
            if not result.added:
                lines.append("Sorry, I couldn't save any of those expenses.")
            else:
                lines.append("I couldn't save these, please send them again:")
            lines.extend(
                f"- {self.amount(item.amount)} on {item.category or 'unknown'}"
                for item in result.failed
            )
        return "\n".join(lines)

    def edited(self, result: EditResult) -> str:
        return (
            f"Updated your {result.category} expense from {_day(result.timestamp)}: "
            f"{self.amount(result.old_amount)} → {self.amount(result.new_amount)}."
        )

    def deleted(self, result: DeleteResult) -> str:
        return (
            f"Deleted {self.amount(result.amount)} spent on {result.category} "
            f"on {_day(result.timestamp)}."
        )

    def total(self, result: TotalResult) -> str:
        """Caller must not pass a failed query (total is None)."""
        spent = self.amount(result.total)

        if result.period_label:
            when = f" {result.period_label}"
        elif result.day is not None:
            when = f" on {_day(result.day)}"
        else:
            when = ""

        if result.category:
            return f"You have spent {spent} on {result.category}{when}."
        if result.query_type is QueryType.DATE or when:
            return f"You spent {spent}{when}."
        return f"Your total expenses so far: {spent}"

    def listing(self, result: ListResult) -> str:
        if not result.records:
            return "You haven't recorded any expenses yet."
        lines = ["Here are all your expenses:"]
        lines.extend(
            f"- {_day(r.timestamp)}: {self.amount(r.amount)} on {r.category}"
            for r in result.records
        )
        return "\n".join(lines)

    # -------------------------------------------------------------------------
    # Guidance and errors
    # -------------------------------------------------------------------------

    def greeting(self) -> str:
        return GREETING

    def goodbye(self) -> str:
        return GOODBYE

    def help(self) -> str:
        c = self._currency
        categories = ", ".join(category.value for category in ExpenseCategory)
        return "\n".join([
            "I can keep track of your expenses. Try:",
            f"- \"{ADD_EXAMPLE.format(c=c)}\"",
            f"- \"{c}100 on coffee and {c}200 on chocolate\"",
            "- \"How much did I spend on food this month?\"",
            "- \"Total expenses\"",
            f"- \"Change the {c}500 food expense to {c}600\"",
            f"- \"Delete {c}300 groceries from yesterday\"",
            "- \"Show all my expenses\"",
            f"Categories: {categories}.",
        ])

    def guidance(self) -> str:
        """Reply for messages we could not map to a ledger operation."""
        return (
            "I couldn't understand that. Tell me what you spent, e.g. "
            f"\"{ADD_EXAMPLE.format(c=self._currency)}\", or ask "
            "\"How much did I spend this month?\". Send \"help\" for more."
        )

    def missing_fields(self, intent: str) -> str:
        """Corrective reply when a recognised request lacks required details."""
        c = self._currency
        examples = {
            "add_expense": f"I need an amount and a category, e.g. \"{ADD_EXAMPLE.format(c=c)}\".",
            "add_expenses": f"Tell me each amount and category, e.g. \"{c}100 on coffee and {c}200 on chocolate\".",
            "edit_expense": f"Tell me the old amount, the category and the new amount, e.g. \"Change the {c}500 food expense to {c}600\".",
            "delete_expense": f"Tell me the amount and category to delete, e.g. \"Delete {c}300 groceries from yesterday\".",
            "query": "Tell me what to total, e.g. \"How much did I spend on food this month?\" or \"Expenses on 2025-02-04\".",
        }
        return examples.get(intent, self.guidance())

    def not_found(self, intent: str, error: NotFoundError) -> str:
        searched = error.searched
        what = f"{self.amount(searched.get('amount'))} for {searched.get('category')}"
        if intent == "delete_expense" and searched.get("start") is not None:
            return f"I couldn't find an expense of {what} on {_day(searched['start'])}."
        return f"I couldn't find an expense of {what}. Check the amount and category and try again."

    def apology(self) -> str:
        return APOLOGY
