"""
Imaging Gateway FastAPI application factory.

Run with:  uvicorn imaging_gateway.api.app:app
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.formparsers import MultiPartException

from .. import __version__
from ..config.loader import GatewayConfig, config_from_env
from ..core.pipeline import AnalysisPipeline
from ..core.quota import QuotaTracker
from ..core.relay import RelayedResponse
from ..sdk.inference_client import InferenceClient
from ..storage.quota_store import get_quota_store
from .lifecycle import LOG_LEVEL_ENV, configure_logging, install_safety_net
from .middleware import RequestLoggingMiddleware

logger = logging.getLogger(__name__)


def to_json_response(relayed: RelayedResponse) -> JSONResponse:
    return JSONResponse(content=relayed.body, status_code=relayed.status_code)


def create_app(
    config: Optional[GatewayConfig] = None,
    tracker: Optional[QuotaTracker] = None,
    client: Optional[InferenceClient] = None,
    static_dir: Optional[str] = None,
) -> FastAPI:
    """Build the gateway application.

    Args:
        config: Gateway configuration (defaults to config_from_env())
        tracker: Quota tracker (defaults to one over the process-wide store)
        client: Inference client (defaults to one reading HF_* from os.environ)
        static_dir: Directory of frontend files served at / (GATEWAY_STATIC_DIR,
            default "public"); skipped when it does not exist

    Returns:
        Configured FastAPI application
    """
    config = config or config_from_env()
    tracker = tracker or QuotaTracker(get_quota_store(), config.daily_limit)
    client = client or InferenceClient(config)
    pipeline = AnalysisPipeline(tracker, client, upload_field=config.upload_field)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        # Worker processes started by the reloader inherit only the environment
        configure_logging(os.getenv(LOG_LEVEL_ENV, "INFO"))
        install_safety_net(asyncio.get_running_loop())
        logger.info(
            "Gateway ready: model=%s, daily_limit=%d, timeout=%s",
            config.model, tracker.daily_limit, config.request_timeout_seconds,
        )
        yield
        logger.info("Gateway shutting down")

    app = FastAPI(
        title="Imaging Gateway",
        version=__version__,
        description="Quota-limited relay of uploaded images to a multimodal inference endpoint",
        lifespan=lifespan,
    )
    app.state.pipeline = pipeline

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    @app.post("/api/analyze")
    async def analyze(request: Request):
        """
        Analyze one uploaded image.

        Expects a multipart body with an image file field. The inference
        service's status and JSON body are returned unchanged.
        """
        client_key = request.client.host if request.client else "unknown"
        parsed = []

        async def read_form():
            try:
                form = await request.form()
            except MultiPartException as exc:
                logger.warning("Unreadable multipart body from %s: %s", client_key, exc)
                return None
            parsed.append(form)
            return form

        try:
            relayed = await pipeline.analyze(client_key, read_form)
        finally:
            for form in parsed:
                await form.close()
        return to_json_response(relayed)

    static_path = Path(static_dir or os.getenv("GATEWAY_STATIC_DIR", "public"))
    if static_path.is_dir():
        app.mount("/", StaticFiles(directory=str(static_path), html=True), name="static")
        logger.info("Serving frontend from %s", static_path)

    return app


load_dotenv()
app = create_app()
