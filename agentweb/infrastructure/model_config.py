"""Model Config Provider: the active upstream model endpoint, from settings."""

from agentweb.config import Settings
from agentweb.core.errors import ModelNotConfiguredError
from agentweb.core.repository_protocols import ModelConfig


class SettingsModelConfigProvider:
    """ModelConfigProvider backed by environment settings."""

    def __init__(self, settings: Settings):
        self._settings = settings

    async def get_active(self) -> ModelConfig:
        if not self._settings.anthropic_api_key or not self._settings.agent_model:
            raise ModelNotConfiguredError()
        return ModelConfig(
            base_url=self._settings.anthropic_base_url or None,
            api_key=self._settings.anthropic_api_key,
            model=self._settings.agent_model,
        )
