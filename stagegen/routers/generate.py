"""Image generation endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from stagegen.exceptions import (
    ApiKeyError,
    AssetFetchError,
    ConfigurationError,
    ExtractionError,
    MediaGenerationError,
    ResponseParseError,
    UpstreamConnectionError,
    UpstreamHTTPError,
)
from stagegen.models.request import GenerateImageRequest
from stagegen.models.response import (
    ErrorResponse,
    GenerateImageResponse,
    ModelInfo,
)
from stagegen.services.provider import MediaGenerationProvider
from stagegen.services.registry import ModelRegistry
from stagegen.services.session import get_session


router = APIRouter()


async def get_provider() -> MediaGenerationProvider:
    session = await get_session()
    return MediaGenerationProvider(session)


def get_registry() -> ModelRegistry:
    return ModelRegistry()


def _error(status_code: int, status: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error": {
                "code": status_code,
                "message": message,
                "status": status,
            }
        },
    )


def _to_http_exception(error: MediaGenerationError) -> HTTPException:
    if isinstance(error, ApiKeyError):
        return _error(401, "UNAUTHENTICATED", error.message)
    if isinstance(error, ConfigurationError):
        return _error(400, "FAILED_PRECONDITION", error.message)
    if isinstance(error, UpstreamHTTPError):
        if 400 <= error.status_code < 500:
            return _error(error.status_code, "INVALID_ARGUMENT", error.message)
        return _error(502, "UNAVAILABLE", error.message)
    if isinstance(error, UpstreamConnectionError):
        return _error(503, "UNAVAILABLE", error.message)
    if isinstance(error, (ResponseParseError, ExtractionError, AssetFetchError)):
        return _error(502, "BAD_GATEWAY", error.message)
    return _error(500, "INTERNAL", error.message)


@router.post(
    "/v1/images:generate",
    response_model=GenerateImageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request"},
        401: {"model": ErrorResponse, "description": "Missing API key"},
        502: {"model": ErrorResponse, "description": "Bad upstream response"},
        503: {"model": ErrorResponse, "description": "Upstream unreachable"},
    },
    summary="Generate an image",
    description="Generate an image, optionally guided by reference images, and return it as a data URI.",
)
async def generate_image(
    request: GenerateImageRequest,
    provider: MediaGenerationProvider = Depends(get_provider),
    registry: ModelRegistry = Depends(get_registry),
) -> GenerateImageResponse:
    model = registry.resolve(request.model)
    if request.model and model is None:
        raise _error(404, "NOT_FOUND", f"Model not found: {request.model}")

    if model and request.aspectRatio and not provider.is_aspect_ratio_supported(
        request.aspectRatio, model
    ):
        raise _error(
            400,
            "INVALID_ARGUMENT",
            f"Unsupported aspect ratio {request.aspectRatio} for {model.id}. "
            f"Supported: {', '.join(model.supported_aspect_ratios)}",
        )

    api_key = registry.api_key_for(model.id) if model else None

    try:
        image = await provider.generate_image(
            request.to_generation_request(), model, api_key
        )
    except MediaGenerationError as e:
        logger.error(f"Generation failed: {e}")
        raise _to_http_exception(e)

    logger.info(f"Generation successful for model: {model.id}")
    return GenerateImageResponse(image=image, model=model.id)


@router.get(
    "/v1/models",
    response_model=list[ModelInfo],
    summary="List available models",
)
async def list_models(registry: ModelRegistry = Depends(get_registry)):
    return [
        ModelInfo(
            id=model.id,
            defaultAspectRatio=model.default_aspect_ratio,
            supportedAspectRatios=model.supported_aspect_ratios,
        )
        for model in registry.list_models()
    ]
