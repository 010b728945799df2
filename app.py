import asyncio
import logging
import os

import chainlit as cl

from config import settings
from recommender.agent import ask, lookup_similar
from recommender.data_loader import load_dataset
from recommender.service import SearchService, build_service

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

if settings.anthropic_api_key:
    os.environ.setdefault("ANTHROPIC_API_KEY", settings.anthropic_api_key)


class ServiceContext:
    """Owns the process-wide SearchService, built on first use."""

    def __init__(self) -> None:
        self._service: SearchService | None = None
        self._lock = asyncio.Lock()

    async def get(self) -> SearchService:
        async with self._lock:
            if self._service is None:
                corpus = await load_dataset()
                logger.info("Dataset loaded with %d movies", len(corpus))
                # Building is CPU-bound; keep it off the event loop
                self._service = await cl.make_async(build_service)(corpus)
        return self._service


context = ServiceContext()


@cl.on_chat_start
async def on_chat_start() -> None:
    """Attach the shared search service to the session."""
    source = f"s3://{settings.s3_bucket}/{settings.s3_prefix}" if settings.s3_bucket else settings.data_path
    await cl.Message(content=f"Loading tag genome from {source}...").send()

    try:
        service = await context.get()
    except Exception:
        logger.exception("Failed to initialize search service")
        await cl.Message(content="Error: Could not load the movie dataset.").send()
        raise

    cl.user_session.set("service", service)

    await cl.Message(
        content=f"Ready! Indexed {len(service.corpus)} movies. Name a movie to find similar ones."
    ).send()


@cl.on_message
async def on_message(message: cl.Message) -> None:
    """Handle incoming messages."""
    service = cl.user_session.get("service")

    if service is None:
        await cl.Message(
            content="Error: Movie index not initialized. Please refresh the page."
        ).send()
        return

    if settings.use_agent:
        reply = await ask(service, message.content)
    else:
        reply = lookup_similar(service, message.content.strip(), settings.default_limit)

    await cl.Message(content=reply).send()
