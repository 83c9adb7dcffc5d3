"""FastAPI application for spec authoring: specs, versions, graphs and import."""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()  # load environment variables from .env file

from specserver.import_routes import router as import_router  # noqa: E402
from specserver.spec_routes import router as spec_router  # noqa: E402
from specserver.spec_store import get_store  # noqa: E402
from specserver.user_routes import router as user_router  # noqa: E402
from specserver.version_routes import router as version_router  # noqa: E402

# CORS origins - configurable via environment variable
# Use comma-separated values for multiple origins, or "*" for all (development only)
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database tables on startup."""
    store = get_store()
    store.init_db()
    logger.info("spec database ready at %s", store.db_path)
    yield


app = FastAPI(
    title="Spec Graph API",
    description="API server for scenario specifications, their versions and version diffs",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# include routes
app.include_router(user_router, prefix="/api")
app.include_router(spec_router, prefix="/api")
app.include_router(version_router, prefix="/api")
app.include_router(import_router, prefix="/api")


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "version": "0.1.0"}


def main() -> None:
    import uvicorn

    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
    )


if __name__ == "__main__":
    main()
