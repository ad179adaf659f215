"""HTTP trigger for the ingestion pipeline.

``POST /process`` runs the pipeline against the configured CSV source and
returns the processed count, headers and age distribution.
``GET /health`` is a side-effect-free liveness probe.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.ingestion.errors import ConfigError, IngestError
from src.ingestion.pipeline import run_pipeline
from src.lib.config import PipelineConfig, load_config

logger = logging.getLogger("ingest_users")


def create_app(config: PipelineConfig | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Runtime configuration; loaded from the environment if None.

    Returns:
        The configured FastAPI app.
    """
    config = config or load_config()
    app = FastAPI(title="CSV to users ingestion API")
    app.state.config = config

    @app.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/process")
    def process() -> JSONResponse:
        try:
            source_path = config.require_source()
        except ConfigError as exc:
            logger.error("Refusing to process: %s", exc)
            return JSONResponse(status_code=400, content={"error": str(exc)})

        try:
            result = run_pipeline(
                source_path=source_path,
                db_path=config.db_path,
                batch_size=config.batch_size,
            )
        except IngestError as exc:
            logger.error("Processing error: %s", exc)
            return JSONResponse(status_code=500, content={"error": str(exc)})

        logger.info("\n%s", result.distribution.summary())
        return JSONResponse(content=result.to_response())

    return app
