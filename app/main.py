# app/main.py
import logging

from fastapi import FastAPI

from . import config
from .catalog import catalog_router
from .catalog.store import TOOLS
from .chat import chat_router, relay_router


logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Builders Lab",
    description=(
        "Catalog of developer and AI tools with guides, example projects "
        "and a chat assistant that relays questions to OpenRouter models."
    ),
    version="1.0.0",
)

app.include_router(catalog_router)
app.include_router(chat_router)
app.include_router(relay_router)


@app.get("/")
def health_check():
    return {"status": "ok", "tools": len(TOOLS)}
