"""Settings-backed model registry."""

from stagegen.config import Settings, settings as default_settings
from stagegen.models.model import ResolvedModel


class ModelRegistry:
    """Resolves models and their credentials from the application settings."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    def list_models(self) -> list[ResolvedModel]:
        return list(self.settings.image_models)

    def get(self, model_id: str) -> ResolvedModel | None:
        for model in self.settings.image_models:
            if model.id == model_id:
                return model
        return None

    def active_model(self) -> ResolvedModel | None:
        """The configured active model, or the first one when unset."""
        if self.settings.active_model:
            return self.get(self.settings.active_model)
        models = self.settings.image_models
        return models[0] if models else None

    def resolve(self, model_id: str | None = None) -> ResolvedModel | None:
        return self.get(model_id) if model_id else self.active_model()

    def api_key_for(self, model_id: str) -> str | None:
        return self.settings.api_keys.get(model_id) or self.settings.api_key
