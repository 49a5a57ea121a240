"""
AI Agents for Expense Bot

DESIGN DECISION: The LLM is a TRANSLATOR, not a BOOKKEEPER.

1. INTENT CLASSIFIER:
   - CAN: Turn a chat message into a structured Intent (JSON)
   - CANNOT: Touch the ledger, resolve dates, or compute totals
   - MUST: Answer with a JSON object carrying an "intent" tag

2. CATEGORY CLASSIFIER:
   - CAN: Map free text ("latte", "uber") onto the fixed taxonomy
   - CANNOT: Invent categories outside ExpenseCategory

Anything the LLM returns is validated against the Intent schema before a
handler sees it. Unparsable or incomplete answers are UPSTREAM failures,
never silently patched up here.
"""

import json
import re
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import ValidationError as PydanticValidationError

from expense_bot.config.settings import GeminiSettings
from expense_bot.exceptions import UnknownIntentError, UpstreamError
from expense_bot.models.expense import (
    INTENT_TAGS,
    ExpenseCategory,
    Intent,
    IntentAdapter,
)


logger = structlog.get_logger(__name__)


class ClassificationError(UpstreamError):
    """The LLM call failed or its answer could not be used."""
    pass


INTENT_INSTRUCTIONS = """You are the parser of a WhatsApp expense tracker bot.
Users send short messages in natural language to record expenses or ask about
past spending. Amounts are in Indian Rupees.

Classify the message and extract its fields. Respond with ONLY a JSON object,
no extra text or explanation. The object MUST have an "intent" key set to one
of the values below.

- "add_expense": one expense.
  {"intent": "add_expense", "amount": 500, "category": "food", "date": "yesterday"}
- "add_expenses": several expenses in one message, sharing one date.
  {"intent": "add_expenses", "items": [{"amount": 100, "category": "coffee"},
   {"amount": 200, "category": "chocolate"}], "date": null}
- "query": a question about spending.
  query_type is "total" (all spending), "category" (spending on one category)
  or "date" (spending on one specific day).
  period is one of today, yesterday, this_month, last_month, last_week, or null.
  {"intent": "query", "query_type": "category", "category": "food", "period": "this_month", "date": null}
- "edit_expense": change the amount of an earlier expense.
  {"intent": "edit_expense", "old_amount": 500, "old_category": "food", "new_amount": 600}
- "delete_expense": remove an earlier expense.
  {"intent": "delete_expense", "amount": 300, "category": "groceries", "date": "yesterday"}
- "list_all": show every recorded expense.
- "help": the user asks what the bot can do.
- "unknown": anything else.

Rules:
- amount is a plain number without currency symbols.
- category is the user's own word for what they bought ("latte", "uber").
- date copies the user's words for the day ("yesterday", "4 Feb",
  "2025-02-04"); use null when no day is mentioned.
- Use null for anything the message does not say. Never guess amounts."""


CATEGORY_INSTRUCTIONS = """Classify this expense description into exactly one category.

Categories: {categories}

Expense: "{raw}"

Respond with ONLY the category name, nothing else."""


def parse_json_object(text: str) -> dict[str, Any]:
    """
    Extract the JSON object from an LLM answer.

    A ```json fenced block is tolerated; anything else around the object
    is not.
    """
    cleaned = text.strip()
    fenced = re.fullmatch(r"```(?:json)?\s*(.*?)\s*```", cleaned, re.DOTALL)
    if fenced:
        cleaned = fenced.group(1).strip()

    if not (cleaned.startswith("{") and cleaned.endswith("}")):
        raise ClassificationError(f"LLM answer is not a JSON object: {text[:200]!r}")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ClassificationError(f"LLM answer is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ClassificationError("LLM answer is not a JSON object")
    return data


def intent_from_payload(payload: dict[str, Any]) -> Intent:
    """
    Validate a classifier payload against the Intent union.

    Raises:
        ClassificationError: "intent" key missing, or fields of the wrong type
        UnknownIntentError: "intent" names a variant we do not know
    """
    if "intent" not in payload:
        raise ClassificationError(f"LLM answer has no 'intent' key: {payload!r}")

    tag = payload["intent"]
    if not isinstance(tag, str) or tag not in INTENT_TAGS:
        raise UnknownIntentError(str(tag))

    try:
        return IntentAdapter.validate_python(payload)
    except PydanticValidationError as e:
        raise ClassificationError(f"LLM answer failed schema validation: {e}") from e


class _GeminiAgent:
    """Shared Gemini setup. A pre-built model can be injected for tests."""

    max_output_tokens: Optional[int] = None

    def __init__(self, settings: GeminiSettings, model: Any = None):
        self._settings = settings
        self._model = model or self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self.max_output_tokens or self._settings.max_tokens,
            }
        )

    async def _generate(self, prompt: str) -> str:
        """One LLM round trip. No retries: a failure fails the request."""
        try:
            response = await self._model.generate_content_async(prompt)
            return response.text.strip()
        except Exception as e:
            raise ClassificationError(f"Gemini call failed: {e}") from e


class IntentClassifier(_GeminiAgent):
    """
    Turns a chat message into a validated Intent.

    FLOW:
    1. Instructions + user text -> Gemini
    2. Answer -> JSON object
    3. JSON object -> Intent (closed union, pydantic)
    """

    async def classify(self, text: str) -> tuple[Intent, dict[str, Any]]:
        """
        Classify a message.

        Returns:
            (intent, raw_payload) - the payload is kept for the audit log
        """
        prompt = f"{INTENT_INSTRUCTIONS}\n\nUser message: \"{text}\""
        answer = await self._generate(prompt)
        payload = parse_json_object(answer)
        intent = intent_from_payload(payload)
        logger.debug("intent_classified", intent=payload["intent"])
        return intent, payload


class CategoryClassifier(_GeminiAgent):
    """Maps a free-text category onto ExpenseCategory."""

    max_output_tokens = 10

    async def classify_category(self, raw: str) -> ExpenseCategory:
        """
        Ask the LLM for a canonical category.

        Raises:
            ClassificationError: call failed or answer is not in the taxonomy
        """
        prompt = CATEGORY_INSTRUCTIONS.format(
            categories=", ".join(category.value for category in ExpenseCategory),
            raw=raw,
        )
        answer = await self._generate(prompt)
        category = ExpenseCategory.lookup(answer)
        if category is None:
            raise ClassificationError(f"Category answer outside taxonomy: {answer!r}")
        return category
