"""Configuration management for the application."""

from pydantic_settings import BaseSettings
from pydantic import Field

from stagegen.models.model import ResolvedModel


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # Proxy Configuration
    proxy: str | None = Field(default=None, description="HTTP proxy URL")

    # Browser fingerprint used by curl_cffi
    impersonate: str = Field(default="chrome131", description="curl_cffi impersonation target")

    # Timeout Configuration
    timeout: int = Field(default=120, description="Request timeout in seconds")

    # Retry Configuration
    max_retry: int = Field(default=3, description="Maximum attempts per request")
    retry_base_delay: float = Field(
        default=2.0,
        description="Linear back-off step in seconds (attempt i waits delay * i)",
    )

    # Asset Fetch Configuration
    local_origin: str | None = Field(
        default=None,
        description="Origin serving the image proxy, enables the fallback transport",
    )
    image_proxy_path: str = Field(
        default="/image-proxy", description="Path of the same-origin image proxy"
    )
    image_proxy_allowed_hosts: list[str] = Field(
        default_factory=list,
        description="Hosts the image proxy may fetch from (and their subdomains), empty allows any public host",
    )

    # Model Configuration
    default_aspect_ratio: str = Field(
        default="16:9", description="Aspect ratio the provider applies implicitly"
    )
    image_models: list[ResolvedModel] = Field(
        default_factory=lambda: [
            ResolvedModel(
                id="gemini-2.5-flash-image",
                api_base_url="https://generativelanguage.googleapis.com",
            ),
        ],
        description="Image models available for generation",
    )
    active_model: str | None = Field(
        default=None, description="Model id used when a request names none"
    )
    api_keys: dict[str, str] = Field(
        default_factory=dict, description="API keys per model id"
    )
    api_key: str | None = Field(
        default=None, description="API key used for models without their own key"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()
