"""
Editor Assistant Backend - FastAPI Application Entry Point
"""

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from errors import AssistantError
from models.chat import describe_validation_error
from routers import chat, config, entities
from services.config_manager import ConfigManager, configure_logging
from services.entity_store import EntityStore
from services.stream_registry import StreamRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup and shutdown logic"""
    config_manager = ConfigManager.get_instance()
    settings = config_manager.get_config()
    configure_logging(settings.get("logLevel", "INFO"))
    logger.info("Starting Editor Assistant Backend (config: %s)", config_manager.config_file)

    app.state.development = config_manager.is_development()
    app.state.stream_registry = StreamRegistry(settings["stream"].get("maxStreams", 256))
    app.state.entity_store = EntityStore(settings["database"]["path"])
    app.state.entity_store.initialize()

    yield
    logger.info("Shutting down Editor Assistant Backend")


app = FastAPI(
    title="Editor Assistant Backend",
    description="Streaming chat assistant backend for editor extensions",
    version="1.0.0",
    lifespan=lifespan,
)

# Editor extensions call from local webviews
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Stream-Id"],
)


def error_body(request: Request, message: str, exc: BaseException | None = None) -> dict:
    """JSON error surface; the stack is only exposed in development"""
    body = {"error": message or "Internal server error"}
    if exc is not None and getattr(request.app.state, "development", False):
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


@app.exception_handler(AssistantError)
async def assistant_error_handler(request: Request, exc: AssistantError):
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(request, exc.message, exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=error_body(request, describe_validation_error(exc)))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_body(request, str(exc.detail), exc))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error")
    return JSONResponse(status_code=500, content=error_body(request, str(exc), exc))


app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
app.include_router(config.router, prefix="/api/config", tags=["config"])
app.include_router(entities.router, prefix="/api", tags=["entities"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "editor-assistant-backend"}


if __name__ == "__main__":
    import uvicorn

    server = ConfigManager.get_instance().get("server", {})
    uvicorn.run(app, host=server.get("host", "0.0.0.0"), port=server.get("port", 8000))
