"""Catalog of named inference provider presets.

Each preset maps a user-facing provider name to the wire format it speaks
(:class:`~paperlens.models.chat.ProviderKind`), its default server root,
whether it needs an API key, a static list of well-known models (returned
when the server's model listing is unreachable), and the embedding
endpoint that can reuse the same key.

Base URLs are server roots: the gateway appends ``/v1/chat/completions`` or
``/api/chat`` itself.  Embedding base URLs are versioned roots: the
embedding client appends ``/embeddings``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from paperlens.models.chat import ProviderKind
from paperlens.utils.errors import InvalidConfigurationError


class ProviderPreset(BaseModel):
    """Static defaults for one named provider."""

    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str
    kind: ProviderKind
    default_base_url: str
    requires_api_key: bool = True
    default_models: tuple[str, ...] = ()
    embedding_base_url: str = Field(default="", description="Empty when the provider has no embeddings.")
    embedding_model: str = ""

    @property
    def supports_embedding(self) -> bool:
        return bool(self.embedding_base_url)


PROVIDER_PRESETS: dict[str, ProviderPreset] = {
    preset.name: preset
    for preset in (
        ProviderPreset(
            name="openai",
            display_name="OpenAI Compatible",
            kind=ProviderKind.OPENAI_COMPATIBLE,
            default_base_url="https://api.openai.com",
            default_models=("gpt-4o", "gpt-4o-mini", "gpt-4-turbo"),
            embedding_base_url="https://api.openai.com/v1",
            embedding_model="text-embedding-3-small",
        ),
        ProviderPreset(
            name="ollama",
            display_name="Ollama",
            kind=ProviderKind.OLLAMA,
            default_base_url="http://localhost:11434",
            requires_api_key=False,
            default_models=("llama3.2", "qwen2.5", "gemma2", "mistral"),
            embedding_base_url="http://localhost:11434/v1",
            embedding_model="nomic-embed-text",
        ),
        ProviderPreset(
            name="siliconflow",
            display_name="SiliconFlow",
            kind=ProviderKind.OPENAI_COMPATIBLE,
            default_base_url="https://api.siliconflow.cn",
            default_models=(
                "Pro/deepseek-ai/DeepSeek-V3.2",
                "Pro/deepseek-ai/DeepSeek-R1",
                "Qwen/Qwen3-235B-A22B-Instruct-2507",
                "Pro/deepseek-ai/DeepSeek-V3",
            ),
            embedding_base_url="https://api.siliconflow.cn/v1",
            embedding_model="BAAI/bge-m3",
        ),
        ProviderPreset(
            name="deepseek",
            display_name="DeepSeek",
            kind=ProviderKind.OPENAI_COMPATIBLE,
            default_base_url="https://api.deepseek.com",
            default_models=("deepseek-chat", "deepseek-reasoner"),
        ),
        ProviderPreset(
            name="302ai",
            display_name="302.AI",
            kind=ProviderKind.OPENAI_COMPATIBLE,
            default_base_url="https://api.302.ai",
            default_models=("gpt-4o", "gemini-2.5-pro", "deepseek-v3.2", "qwen3-max"),
            embedding_base_url="https://api.302.ai/v1",
            embedding_model="text-embedding-3-small",
        ),
    )
}


def get_preset(name: str) -> ProviderPreset:
    """Look up a preset by name (case-insensitive).

    Raises
    ------
    InvalidConfigurationError
        If *name* is not a known preset.
    """
    preset = PROVIDER_PRESETS.get(name.strip().lower())
    if preset is None:
        known = ", ".join(sorted(PROVIDER_PRESETS))
        raise InvalidConfigurationError(
            message=f"Unknown provider '{name}'. Known providers: {known}",
        )
    return preset
