"""ShareHub Backend Application.

This is the main entry point for the ShareHub service: a presence-aware
message hub where connected clients see who is online and exchange text
and file messages, either with everyone or privately with one person.

Modules:
    - chat: connection registry, presence broadcasting and message routing
      over WebSocket
    - files: HTTP file upload and download (DuckDB-tracked metadata)
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sharehub.chat.hub import ChatHub
from sharehub.chat.router import router as chat_router
from sharehub.config import get_config
from sharehub.files.router import router as files_router
from sharehub.files.service import FileStorageService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence verbose third-party loggers.
for _noisy in (
    "multipart",
    "python_multipart",
    "uvicorn.access",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in sharehub.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    FileStorageService.get_instance()
    ChatHub.get_instance()
    logger.info(
        f"ShareHub ready on http://{config.server.host}:{config.server.port}"
    )

    yield  # Application runs here

    # Shutdown
    FileStorageService.reset_instance()
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="ShareHub API",
    description="Presence-aware real-time message hub with public and private delivery",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register all routers
app.include_router(chat_router)
app.include_router(files_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object with the number of connected clients.
    """
    return {"status": "ok", "online": len(ChatHub.get_instance().registry)}


def run() -> None:
    """Console entry point: serve the app with the configured host and port."""
    config = get_config()
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level,
    )
