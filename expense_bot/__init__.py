"""
Expense Bot - Source Package

A conversational expense ledger for WhatsApp. Users describe what they
spent or ask about past spending in plain text and get a text reply.

DESIGN PRINCIPLES:
1. The LLM translates text into a structured intent, nothing more
2. Every ledger operation is deterministic code
3. Every request ends in exactly one reply
4. Every outcome is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Bot Team"
