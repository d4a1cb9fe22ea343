"""Resolved model descriptors supplied by the model registry."""

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_ASPECT_RATIOS = ["1:1", "3:4", "4:3", "9:16", "16:9", "21:9"]


class ResolvedModel(BaseModel):
    """Provider configuration for a single image model."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Model id")
    endpoint: str | None = Field(
        default=None, description="Endpoint path, defaults to generateContent"
    )
    api_base_url: str = Field(..., description="Provider base URL")
    default_aspect_ratio: str = Field(default="16:9", description="Default aspect ratio")
    supported_aspect_ratios: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ASPECT_RATIOS),
        description="Aspect ratios accepted by the model",
    )

    @property
    def endpoint_path(self) -> str:
        return self.endpoint or f"/v1beta/models/{self.id}:generateContent"

    @property
    def url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}{self.endpoint_path}"
