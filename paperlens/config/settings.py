"""Application settings loaded from environment variables via pydantic-settings.

Settings are read from two sources, highest priority first:

  1. **Environment variables** -- e.g. ``LLM_API_KEY=sk-abc123``
  2. **.env file** -- ``key=value`` lines in the working directory's ``.env``

Field ``llm_api_key`` maps to env var ``LLM_API_KEY`` (pydantic-settings
matches case-insensitively).  Defaults apply when neither source sets a
field.

Settings is the only place that knows about presets and environment; the
rest of the code receives immutable :class:`ProviderConfig` /
:class:`EmbeddingConfig` objects built by :meth:`Settings.provider_config`
and :meth:`Settings.embedding_config`.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from paperlens.config.prompts import DEFAULT_SYSTEM_PROMPT
from paperlens.config.providers import ProviderPreset, get_preset
from paperlens.models.chat import EmbeddingConfig, ProviderConfig


class Settings(BaseSettings):
    """PaperLens settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Inference provider ===
    # Preset name from paperlens.config.providers; empty base URL / model
    # fall back to the preset's defaults.
    llm_provider: str = "siliconflow"
    llm_base_url: str = ""
    llm_api_key: str = ""
    llm_model: str = ""
    llm_temperature: float = 0.7
    llm_max_tokens: int = 4096
    request_timeout: float = 120.0

    # === Context ===
    context_token_budget: int = 16000
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # === Embeddings / retrieval ===
    # With the shared key on, the LLM key is reused against the preset's
    # embedding endpoint (if the preset has one).
    embedding_use_shared_key: bool = True
    embedding_base_url: str = ""
    embedding_api_key: str = ""
    embedding_model: str = ""
    embedding_batch_size: int = 10
    chunk_size: int = 1000
    chunk_overlap: int = 200
    retrieval_limit: int = 3

    # === Brief cache ===
    brief_cache_size: int = 64
    brief_cache_ttl: int = 24 * 3600

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def preset(self) -> ProviderPreset:
        return get_preset(self.llm_provider)

    def provider_config(self) -> ProviderConfig:
        """Build the immutable per-request inference configuration."""
        preset = self.preset
        model = self.llm_model or (preset.default_models[0] if preset.default_models else "")
        return ProviderConfig(
            provider_name=preset.name,
            provider_kind=preset.kind,
            base_url=(self.llm_base_url or preset.default_base_url).rstrip("/"),
            api_key=self.llm_api_key,
            model_name=model,
            temperature=self.llm_temperature,
            max_tokens=self.llm_max_tokens,
            context_token_budget=self.context_token_budget,
            requires_api_key=preset.requires_api_key,
            fallback_models=list(preset.default_models),
            request_timeout=self.request_timeout,
        )

    def embedding_config(self) -> EmbeddingConfig:
        """Build the effective embedding configuration.

        When the shared key is enabled and no dedicated embedding key is set,
        the LLM key is used with the preset's embedding endpoint; explicit
        ``embedding_base_url`` / ``embedding_model`` still win.
        """
        preset = self.preset
        if (
            self.embedding_use_shared_key
            and not self.embedding_api_key
            and preset.supports_embedding
        ):
            return EmbeddingConfig(
                provider_name=f"{preset.name}-embedding",
                base_url=self.embedding_base_url or preset.embedding_base_url,
                api_key=self.llm_api_key,
                model_name=self.embedding_model or preset.embedding_model,
                batch_size=self.embedding_batch_size,
            )
        return EmbeddingConfig(
            provider_name="embedding",
            base_url=self.embedding_base_url,
            api_key=self.embedding_api_key,
            model_name=self.embedding_model,
            batch_size=self.embedding_batch_size,
        )
