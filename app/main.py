"""
Twilio WhatsApp Webhook for Expense Bot

This is the transport: Twilio POSTs each inbound WhatsApp message here as
form data and sends our TwiML reply back to the user.

DESIGN PRINCIPLES:
1. Only the message text (Body) is read from the webhook
2. Every request gets a 200 with exactly one <Message>
3. No ledger logic lives here - it all sits behind IntentRouter
"""

from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, Form
from fastapi.responses import Response
from twilio.twiml.messaging_response import MessagingResponse

from expense_bot.audit import configure_logging
from expense_bot.config import get_settings, validate_all_settings
from expense_bot.orchestrator import IntentRouter, create_app_components


@lru_cache()
def get_router() -> IntentRouter:
    """Get or create application components (cached)."""
    return create_app_components(get_settings())


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(get_settings().app.log_level)
    get_router()
    yield


app = FastAPI(title="Expense Bot", lifespan=lifespan)


def twiml_reply(text: str) -> Response:
    """Wrap reply text in a TwiML document with one message."""
    twiml = MessagingResponse()
    twiml.message(text)
    return Response(content=str(twiml), media_type="text/xml")


@app.post("/sms")
async def sms_webhook(
    body: str = Form(default="", alias="Body"),
    router: IntentRouter = Depends(get_router),
):
    reply = await router.handle_message(body)
    return twiml_reply(reply)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/health/config")
async def health_config():
    checks = validate_all_settings()
    return {name: value for name, value in checks.items() if not name.endswith("_error")}


def main():
    import uvicorn

    settings = get_settings()
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.app.port, reload=False)


if __name__ == "__main__":
    main()
