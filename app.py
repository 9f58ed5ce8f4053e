from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from routers.assist import assist_router, validation_error_handler
from routers.rooms import rooms_router
from backend import RelayBackend
from constants import LOG_FILE, LOG_LEVEL
from errors import ApiError, api_error_handler
from session import Session
from upstream import UpstreamClient
from logging_config import get_logger, setup_logging

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


def create_app(backend: Optional[RelayBackend] = None, upstream: Optional[UpstreamClient] = None) -> FastAPI:
    """Build the app around its own relay state and upstream client."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.upstream.aclose()
        logger.info("Upstream client closed")

    app = FastAPI(lifespan=lifespan)
    app.state.backend = backend or RelayBackend()
    app.state.upstream = upstream or UpstreamClient()

    # Configure CORS to allow all origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(assist_router)
    app.include_router(rooms_router)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Signaling channel. Frames are JSON ``{"event": ..., "data": ...}``.

        The server sends ``connected`` with the connection id first; the
        client then sends ``join-room`` and ``signal`` events.
        """
        await Session(websocket, app.state.backend).run()

    logger.info("FastAPI application initialized")
    return app


app = create_app()
