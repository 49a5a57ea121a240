"""
Category Normalization

Maps what the user called an expense ("latte", "uber ride") onto the
fixed ExpenseCategory taxonomy using the LLM category classifier.

DESIGN DECISION: Normalization is best-effort. If the classifier fails
for any reason the raw text is stored as the category instead, so an
expense is never lost because of a flaky LLM call. The same input can
normalize differently on different days; callers must not rely on it.
"""

from typing import Optional

import structlog

from expense_bot.agents.ai_agents import CategoryClassifier, ClassificationError


logger = structlog.get_logger(__name__)


class CategoryNormalizer:
    """Best-effort mapping of free-text categories to the taxonomy."""

    def __init__(self, classifier: Optional[CategoryClassifier] = None):
        """
        Args:
            classifier: LLM category classifier. If None, categories are
                        stored exactly as the user wrote them.
        """
        self._classifier = classifier

    async def normalize(self, raw_category: str) -> str:
        """Canonical category name, or raw_category unchanged on failure."""
        if not raw_category or not raw_category.strip():
            return raw_category
        if self._classifier is None:
            return raw_category

        try:
            category = await self._classifier.classify_category(raw_category)
        except ClassificationError as e:
            logger.warning(
                "category_normalization_fallback",
                raw_category=raw_category,
                error=str(e),
            )
            return raw_category

        return category.value
