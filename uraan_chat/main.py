"""FastAPI application entry point for the Uraan Chat API."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from uraan_chat.api.routes.chat import router as chat_router
from uraan_chat.api.routes.chats import router as chats_router
from uraan_chat.api.routes.uploads import router as uploads_router
from uraan_chat.config import settings
from uraan_chat.core.errors import ChatAppError
from uraan_chat.database import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup."""
    init_db()
    logger.info("Uraan Chat API started")
    yield


app = FastAPI(
    title="Uraan Chat API",
    description="Streamed LLM chat, chat history and attachment uploads",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"name": "Uraan Chat API", "docs": "/docs"}


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


app.include_router(chat_router)
app.include_router(chats_router)
app.include_router(uploads_router)


@app.exception_handler(ChatAppError)
async def chat_app_error_handler(request: Request, exc: ChatAppError):
    """Render domain errors with their status code."""
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": type(exc).__name__},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Hide internal error details from clients."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )
