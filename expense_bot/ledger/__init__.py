"""Ledger mutation package."""

from expense_bot.ledger.mutator import LedgerMutator
from expense_bot.ledger.normalizer import CategoryNormalizer

__all__ = ["CategoryNormalizer", "LedgerMutator"]
