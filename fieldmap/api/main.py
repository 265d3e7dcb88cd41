"""Fieldmap API - field-mapping transformation service.

Serves the transformation catalog and applies transformations:
- Single-value execution of any transformation kind
- Saved pipelines (ordered steps over JSON records)
- Record-level application of saved or inline pipelines
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fieldmap import __version__, config
from fieldmap.api.routes import pipelines, transformations
from fieldmap.transformations.executor import get_transformation_executor
from fieldmap.transformations.registry import get_pipeline_registry

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Loading pipeline definitions...")
    pipeline_registry = get_pipeline_registry()
    logger.info(f"Loaded {pipeline_registry.count()} pipelines")

    executor = get_transformation_executor()
    logger.info(f"Executor supports {len(executor.supported_kinds())} transformations")

    if config.STRICT_MODE:
        logger.info("Strict mode enabled: failing steps abort pipelines")

    logger.info("Fieldmap API ready")
    yield
    logger.info("Shutting down Fieldmap API")


app = FastAPI(
    title="Fieldmap API",
    description="""
## Field-mapping transformations

Apply named transformations to values, and ordered transformation steps
to JSON records addressed with field paths.

### Key Endpoints

- `GET /v1/transformations` - Full transformation catalog
- `GET /v1/transformations/available?source=&target=` - Offered transformations
- `POST /v1/transformations/execute` - Transform one value
- `GET /v1/pipelines` - List saved pipelines
- `POST /v1/pipelines/apply` - Apply a pipeline to a record
""",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers with /v1 prefix
app.include_router(transformations.router, prefix="/v1")
app.include_router(pipelines.router, prefix="/v1")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Fieldmap API",
        "version": __version__,
        "description": "Field-mapping transformation service",
        "docs": "/docs",
        "endpoints": {
            "transformations": "/v1/transformations",
            "pipelines": "/v1/pipelines",
        },
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "pipelines_loaded": get_pipeline_registry().count(),
        "transformations_supported": len(
            get_transformation_executor().supported_kinds()
        ),
        "strict_mode": config.STRICT_MODE,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fieldmap.api.main:app",
        host="0.0.0.0",
        port=8001,
        reload=True,
    )
