"""Request models for generation calls and the Gemini wire format."""

from typing import Literal
from pydantic import BaseModel, ConfigDict, Field


class GenerationRequest(BaseModel):
    """Caller-side generation request."""

    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., description="Prompt text")
    reference_images: tuple[str, ...] = Field(
        default=(), description="Reference images as data URIs, scene first"
    )
    aspect_ratio: str | None = Field(default=None, description="Target aspect ratio")


class InlineData(BaseModel):
    """Inline data for image content."""

    mimeType: str = Field(..., description="MIME type of the data")
    data: str = Field(..., description="Base64 encoded data")


class Part(BaseModel):
    """Part of content, can be text or inline data."""

    text: str | None = Field(default=None, description="Text content")
    inlineData: InlineData | None = Field(default=None, description="Inline data")


class Content(BaseModel):
    """Content with role and parts."""

    role: Literal["user", "model"] = Field(default="user", description="Role of the content")
    parts: list[Part] = Field(..., description="Parts of the content")


class ImageConfig(BaseModel):
    """Image configuration for generation."""

    aspectRatio: str | None = Field(default=None, description="Aspect ratio (e.g., '1:1', '16:9')")


class GenerationConfig(BaseModel):
    """Generation configuration."""

    responseModalities: list[str] = Field(
        default=["TEXT", "IMAGE"], description="Response modalities"
    )
    imageConfig: ImageConfig | None = Field(default=None, description="Image configuration")


class GenerateContentRequest(BaseModel):
    """Request body for the generateContent endpoint."""

    contents: list[Content] = Field(..., description="Contents to generate from")
    generationConfig: GenerationConfig = Field(
        default_factory=GenerationConfig, description="Generation configuration"
    )


class GenerateImageRequest(BaseModel):
    """Body of the image generation API endpoint."""

    prompt: str = Field(..., min_length=1, description="Prompt text")
    referenceImages: list[str] = Field(
        default_factory=list, description="Reference images as data URIs"
    )
    aspectRatio: str | None = Field(default=None, description="Target aspect ratio")
    model: str | None = Field(default=None, description="Model id, defaults to the active model")

    def to_generation_request(self) -> GenerationRequest:
        return GenerationRequest(
            prompt=self.prompt,
            reference_images=tuple(self.referenceImages),
            aspect_ratio=self.aspectRatio,
        )
