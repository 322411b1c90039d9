from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Optional, Type

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, RedirectResponse, Response

from detect_kit import (
    DecodeError,
    DetectionError,
    DetectionPipeline,
    DimensionError,
    InferenceError,
    ModelLoadError,
    RenderError,
    ShapeMismatchError,
)

from .config import ServiceConfig, config_from_env
from .schemas import DetectionOut, DetectResponse, ErrorResponse
from .service import DetectionService, build_pipeline
from .storage import ResultStore, StoredResult

log = logging.getLogger(__name__)

ERROR_STATUS: Dict[Type[DetectionError], int] = {
    DecodeError: 400,
    DimensionError: 422,
    ShapeMismatchError: 500,
    InferenceError: 500,
    RenderError: 500,
    ModelLoadError: 503,
}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Unsupported or corrupt image"},
    422: {"model": ErrorResponse, "description": "Degenerate image geometry"},
    500: {"model": ErrorResponse, "description": "Inference or post-processing failure"},
    503: {"model": ErrorResponse, "description": "Model not loaded"},
}


def _status_for(exc: DetectionError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


def _service(request: Request) -> DetectionService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise ModelLoadError("Detection model is not loaded.")
    return service


def create_app(
    config: Optional[ServiceConfig] = None,
    *,
    pipeline: Optional[DetectionPipeline] = None,
    store: Optional[ResultStore] = None,
) -> FastAPI:
    """
    Build the HTTP app.

    Without an injected `pipeline` the model is loaded once at startup and
    released at shutdown.
    """

    cfg = config or ServiceConfig()
    result_store = store or ResultStore(Path(cfg.storage_dir), max_items=cfg.max_stored_results)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned: Optional[DetectionPipeline] = None
        if app.state.service is None:
            owned = build_pipeline(cfg)
            app.state.service = DetectionService(owned, result_store)
        try:
            yield
        finally:
            if owned is not None:
                owned.close()
                app.state.service = None
                log.info("Detection model released")

    app = FastAPI(
        title="Object Detection API",
        version="1.0.0",
        description="API for detecting objects in images",
        docs_url="/api",
        lifespan=lifespan,
    )
    app.state.service = DetectionService(pipeline, result_store) if pipeline is not None else None

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        log.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    @app.exception_handler(DetectionError)
    async def detection_error_handler(request: Request, exc: DetectionError):
        status = _status_for(exc)
        if status >= 500:
            log.error("Error detecting objects on image: %s", exc)
        return JSONResponse(status_code=status, content={"error": exc.kind, "detail": str(exc)})

    @app.get("/", include_in_schema=False)
    def root():
        return RedirectResponse(url="/api")

    @app.post("/detect", status_code=201, response_model=DetectResponse, responses=ERROR_RESPONSES)
    async def detect(request: Request, image_file: UploadFile = File(...)):
        """
        Detect objects on an uploaded image and store the rendered result.
        """
        service = _service(request)
        data = await image_file.read()
        processed = await run_in_threadpool(service.process, data, image_file.filename)

        detections = [
            DetectionOut(label=d.label, class_id=d.class_id, score=d.score, box=list(d.as_xyxy()))
            for d in processed.detections
        ]
        return DetectResponse(
            id=processed.key,
            filename=processed.stored.filename,
            total=len(detections),
            detections=detections,
            download_url=str(app.url_path_for("download_result", key=processed.key)),
        )

    def _file_response(result: StoredResult) -> Response:
        try:
            content = result_store.read(result)
        except FileNotFoundError:
            raise HTTPException(status_code=404, detail="Processed image not found")
        return Response(
            content=content,
            media_type=result.media_type,
            headers={"Content-Disposition": f"attachment; filename={result.filename}"},
        )

    @app.get("/download", responses={404: {"description": "No processed image yet"}})
    async def download_latest():
        """
        Download the most recently processed image.
        """
        result = result_store.latest()
        if result is None:
            raise HTTPException(status_code=404, detail="No processed image yet")
        return await run_in_threadpool(_file_response, result)

    @app.get("/download/{key}", responses={404: {"description": "Unknown result id"}})
    async def download_result(key: str):
        """
        Download a processed image by the id returned from /detect.
        """
        try:
            result = result_store.get(key)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Unknown result id: {key}")
        return await run_in_threadpool(_file_response, result)

    @app.get("/health")
    def health():
        """
        Basic health check.
        """
        return {"status": "ok", "model_loaded": app.state.service is not None}

    return app


def app_from_env() -> FastAPI:
    """Factory for `uvicorn --factory detection_api.api:app_from_env`."""

    return create_app(config_from_env())
