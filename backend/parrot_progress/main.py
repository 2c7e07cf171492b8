import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .db import close_mongo_connection, connect_to_mongo, get_database
from .errors import PersistenceFailure
from .repositories import InMemoryProgressionStore, MongoProgressionStore
from .repositories.protocols import ProgressionStoreProtocol
from .routers import api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    if getattr(app.state, "store", None) is not None:
        # A store was injected when the app was built; nothing to connect.
        yield
        return

    client = await connect_to_mongo(settings)
    store: ProgressionStoreProtocol | None = None
    if client is not None:
        mongo_store = MongoProgressionStore(get_database(client, settings), settings)
        try:
            await mongo_store.ensure_indexes()
            await mongo_store.seed_if_empty()
            store = mongo_store
        except PersistenceFailure:
            logger.exception("Failed to prepare MongoDB collections")
            close_mongo_connection(client)
            client = None

    if store is None:
        logger.warning(
            "MongoDB connection is not available; using the in-memory progression store"
        )
        store = InMemoryProgressionStore()
        await store.ensure_indexes()
        await store.seed_if_empty()

    app.state.store = store
    yield

    app.state.store = None
    close_mongo_connection(client)


async def persistence_failure_handler(request: Request, exc: PersistenceFailure) -> JSONResponse:
    logger.error(
        "%s %s failed: operation=%s user=%s detail=%s",
        request.method,
        request.url.path,
        exc.operation,
        exc.user_id,
        exc.detail,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Something went wrong, please try again"},
    )


def create_app(
    settings: Settings | None = None,
    *,
    store: ProgressionStoreProtocol | None = None,
) -> FastAPI:
    """Build the API application.

    Passing ``store`` skips the MongoDB connection at startup.
    """

    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title="Parrot Progress API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(PersistenceFailure, persistence_failure_handler)
    app.include_router(api_router, prefix="/api")

    @app.get("/", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        """Simple health-check endpoint."""

        return {"status": "ok"}

    return app


app = create_app()
