from stagegen.config import Settings
from stagegen.models.model import ResolvedModel
from stagegen.services.registry import ModelRegistry


FLASH = ResolvedModel(id="flash", api_base_url="https://a.example.com")
PRO = ResolvedModel(
    id="pro",
    api_base_url="https://b.example.com",
    endpoint="/v1/pro:generate",
    default_aspect_ratio="1:1",
)


def make_registry(**overrides):
    return ModelRegistry(Settings(image_models=[FLASH, PRO], **overrides))


def test_active_model_defaults_to_first():
    assert make_registry().active_model() == FLASH


def test_active_model_from_settings():
    registry = make_registry(active_model="pro")

    assert registry.active_model() == PRO
    assert registry.resolve() == PRO
    assert registry.resolve("flash") == FLASH


def test_unknown_model():
    registry = make_registry(active_model="missing")

    assert registry.active_model() is None
    assert registry.get("missing") is None
    assert registry.resolve("missing") is None


def test_api_keys_per_model_with_fallback():
    registry = make_registry(api_keys={"pro": "pro-key"}, api_key="shared")

    assert registry.api_key_for("pro") == "pro-key"
    assert registry.api_key_for("flash") == "shared"
    assert make_registry().api_key_for("flash") is None


def test_endpoint_urls():
    assert FLASH.url == "https://a.example.com/v1beta/models/flash:generateContent"
    assert PRO.url == "https://b.example.com/v1/pro:generate"
    assert make_registry().resolve("pro").url.startswith("https://b.example.com/")
