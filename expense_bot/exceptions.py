"""
Error taxonomy for the expense ledger.

DESIGN DECISION: Errors are split by who can fix them.

- ValidationError / NotFoundError: the user can fix these by rephrasing.
  The router turns them into a specific, corrective reply.
- UpstreamError / UnknownIntentError: nobody in the chat can fix these.
  The router collapses them into one generic apology and logs the detail.
"""

from typing import Optional


class ExpenseBotError(Exception):
    """Base exception for all expense bot errors."""
    pass


class ValidationError(ExpenseBotError):
    """Required structured fields are missing, null or out of range."""

    def __init__(self, message: str, fields: Optional[list[str]] = None):
        self.fields = fields or []
        super().__init__(message)


class NotFoundError(ExpenseBotError):
    """No expense matched the edit/delete criteria."""

    def __init__(self, message: str, searched: Optional[dict] = None):
        self.searched = searched or {}
        super().__init__(message)


class UpstreamError(ExpenseBotError):
    """An external collaborator (LLM or storage) failed."""
    pass


class UnknownIntentError(ExpenseBotError):
    """The classifier answered with a tag outside the known intent set."""

    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"Unknown intent tag: {tag!r}")
