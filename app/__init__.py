"""Webhook application package."""
