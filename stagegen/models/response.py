"""Response models for the Gemini wire format and the service API."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _drop_nulls(value):
    """Treat a null list as empty and skip null entries."""
    if value is None:
        return []
    if isinstance(value, list):
        return [item for item in value if item is not None]
    return value


class ResponseInlineData(BaseModel):
    """Inline data returned by the provider."""

    model_config = ConfigDict(extra="ignore")

    mimeType: str | None = Field(default=None, description="MIME type of the data")
    data: str | None = Field(default=None, description="Base64 encoded data")


class ResponsePart(BaseModel):
    """Part of a candidate's content."""

    model_config = ConfigDict(extra="ignore")

    text: str | None = Field(default=None, description="Text content")
    inlineData: ResponseInlineData | None = Field(default=None, description="Inline data")


class ResponseContent(BaseModel):
    """Content of a candidate."""

    model_config = ConfigDict(extra="ignore")

    role: str | None = Field(default=None, description="Role of the content")
    parts: list[ResponsePart] = Field(default_factory=list, description="Parts of the content")

    @field_validator("parts", mode="before")
    @classmethod
    def drop_null_parts(cls, value):
        return _drop_nulls(value)


class Candidate(BaseModel):
    """Candidate response from the model."""

    model_config = ConfigDict(extra="ignore")

    content: ResponseContent | None = Field(default=None, description="Content of the candidate")
    finishReason: str | None = Field(default=None, description="Reason for finishing")
    index: int | None = Field(default=None, description="Index of the candidate")


class GenerateContentResponse(BaseModel):
    """Response body (or stream event payload) of generateContent."""

    model_config = ConfigDict(extra="ignore")

    candidates: list[Candidate] = Field(
        default_factory=list, description="Candidates from generation"
    )
    modelVersion: str | None = Field(default=None, description="Model version used")

    @field_validator("candidates", mode="before")
    @classmethod
    def drop_null_candidates(cls, value):
        return _drop_nulls(value)


class GenerateImageResponse(BaseModel):
    """Response of the image generation API endpoint."""

    image: str = Field(..., description="Generated image as a data URI")
    model: str = Field(..., description="Model id used for generation")


class ModelInfo(BaseModel):
    """Model listing entry."""

    id: str = Field(..., description="Model id")
    defaultAspectRatio: str = Field(..., description="Default aspect ratio")
    supportedAspectRatios: list[str] = Field(..., description="Supported aspect ratios")


class ErrorDetail(BaseModel):
    """Error detail in response."""

    code: int = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    status: str = Field(..., description="Error status")


class ErrorResponse(BaseModel):
    """Error response model."""

    error: ErrorDetail = Field(..., description="Error details")
