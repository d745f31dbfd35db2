"""
FastAPI application exposing image, video and text generation.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .. import __version__
from ..config.settings import Settings
from ..core.errors import ErrorHandler, GenerationError
from ..core.models import MediaKind
from ..generation.content import ContentGenerator
from ..generation.service import GenerationService
from .schemas import (
    GenerateImagesRequest,
    GenerateMetadataRequest,
    GenerateVideoRequest,
    ViralIdeasRequest,
    ViralScriptRequest,
)

router = APIRouter(prefix="/api")


def _service(request: Request) -> GenerationService:
    return request.app.state.service


def _content(request: Request) -> ContentGenerator:
    return request.app.state.content


@router.get("/health")
async def health(request: Request) -> Dict[str, Any]:
    service = _service(request)
    return {
        "status": "ok",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "providers": {kind.value: service.chain_names(kind) for kind in MediaKind},
        "textGeneration": _content(request).llm.is_configured(),
    }


@router.post("/generate-images")
async def generate_images(body: GenerateImagesRequest, request: Request) -> Dict[str, Any]:
    return await _service(request).generate_images(
        body.prompt,
        count=body.count,
        style=body.style,
        aspect_ratio=body.aspect_ratio,
        quality_tier=body.model,
    )


@router.post("/generate-video")
async def generate_video(body: GenerateVideoRequest, request: Request) -> Dict[str, Any]:
    return await _service(request).generate_video(
        body.prompt,
        style=body.style,
        aspect_ratio=body.resolved_aspect_ratio(),
        quality_tier=body.model,
        duration=body.duration,
    )


@router.post("/viral/ideas")
async def viral_ideas(body: ViralIdeasRequest, request: Request) -> Dict[str, Any]:
    ideas = await _content(request).viral_ideas(body.niche, body.count)
    return {"success": True, "ideas": ideas}


@router.post("/viral/script")
async def viral_script(body: ViralScriptRequest, request: Request) -> Dict[str, Any]:
    script = await _content(request).viral_script(body.idea, body.format, body.image_count)
    return {"success": True, "script": script}


@router.post("/generate-metadata")
async def generate_metadata(body: GenerateMetadataRequest, request: Request) -> Dict[str, Any]:
    metadata = await _content(request).metadata(body.topic, body.format, body.language)
    return {"success": True, "metadata": metadata}


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first['msg']}" if location else first["msg"]


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[GenerationService] = None,
    content: Optional[ContentGenerator] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings; loaded from the environment when omitted
        service: Generation service; built from settings when omitted
        content: Text content generator; built from settings when omitted

    Returns:
        Configured FastAPI app
    """
    settings = settings or Settings.from_env()
    error_handler = ErrorHandler()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Configured providers: {', '.join(settings.configured_providers()) or 'none'}")
        yield
        await app.state.service.cleanup()

    app = FastAPI(title="vlogstudio", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service or GenerationService(settings)
    app.state.content = content or ContentGenerator(settings)
    app.state.error_handler = error_handler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(GenerationError)
    async def generation_error_handler(request: Request, exc: GenerationError):
        error_handler.log_error(exc, {"path": request.url.path})
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = _validation_message(exc)
        logger.warning(f"Validation error on {request.url.path}: {message}")
        return JSONResponse(status_code=400, content={"error": message})

    app.include_router(router)
    return app
