"""Man Friday FastAPI entrypoint: WhatsApp webhook and health check."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response

from src.core.config import settings
from src.core.db import redis
from src.core.router import handle_message
from src.gateway.types import IncomingMessage
from src.gateway.whatsapp_gw import WhatsAppGateway

logging.basicConfig(level=getattr(logging, settings.log_level))
logger = logging.getLogger(__name__)

_whatsapp_gw: WhatsAppGateway | None = None


async def on_message(incoming: IncomingMessage) -> None:
    """Run one inbound WhatsApp message through the router and send the reply."""
    if _whatsapp_gw is None:
        return
    response = await handle_message(incoming)
    await _whatsapp_gw.send(response)


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _whatsapp_gw
    logger.info("Starting Man Friday...")

    if settings.whatsapp_api_token:
        _whatsapp_gw = WhatsAppGateway()
        _whatsapp_gw.on_message(on_message)
        logger.info("WhatsApp gateway configured")
    else:
        logger.warning("WHATSAPP_API_TOKEN not set, webhook disabled")

    yield

    if _whatsapp_gw:
        await _whatsapp_gw.close()
    await redis.aclose()
    logger.info("Shutting down Man Friday...")


app = FastAPI(title="Man Friday", lifespan=lifespan)


@app.get("/health")
async def health():
    checks = {"api": "ok"}
    try:
        await redis.ping()
        checks["redis"] = "ok"
    except Exception:
        checks["redis"] = "error"
    status = "ok" if all(v == "ok" for v in checks.values()) else "degraded"
    return {"status": status, **checks}


# ------------------------------------------------------------------
# WhatsApp webhook
# ------------------------------------------------------------------
@app.post("/webhook/whatsapp")
async def whatsapp_webhook(request: Request):
    """Handle WhatsApp Business Cloud API webhook."""
    if not _whatsapp_gw:
        return Response(status_code=200)

    payload = await request.json()
    await _whatsapp_gw.feed_update(payload)

    return {"status": "ok"}


@app.get("/webhook/whatsapp")
async def whatsapp_verify(request: Request):
    """WhatsApp webhook verification challenge."""
    if not _whatsapp_gw:
        return Response(status_code=403)

    mode = request.query_params.get("hub.mode", "")
    token = request.query_params.get("hub.verify_token", "")
    challenge = request.query_params.get("hub.challenge", "")

    result = _whatsapp_gw.verify_webhook(mode, token, challenge)
    if result:
        return Response(content=result, media_type="text/plain")
    return Response(status_code=403)
