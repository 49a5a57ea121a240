"""AI agents package."""

from expense_bot.agents.ai_agents import (
    CategoryClassifier,
    ClassificationError,
    IntentClassifier,
    intent_from_payload,
    parse_json_object,
)

__all__ = [
    "CategoryClassifier",
    "ClassificationError",
    "IntentClassifier",
    "intent_from_payload",
    "parse_json_object",
]
