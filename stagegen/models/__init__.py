"""Data models for the application."""

from .model import ResolvedModel
from .request import (
    GenerationRequest,
    GenerateContentRequest,
    GenerateImageRequest,
    Content,
    Part,
    InlineData,
    GenerationConfig,
    ImageConfig,
)
from .response import (
    GenerateContentResponse,
    GenerateImageResponse,
    Candidate,
    ModelInfo,
    ErrorResponse,
    ErrorDetail,
)

__all__ = [
    "ResolvedModel",
    "GenerationRequest",
    "GenerateContentRequest",
    "GenerateImageRequest",
    "Content",
    "Part",
    "InlineData",
    "GenerationConfig",
    "ImageConfig",
    "GenerateContentResponse",
    "GenerateImageResponse",
    "Candidate",
    "ModelInfo",
    "ErrorResponse",
    "ErrorDetail",
]
