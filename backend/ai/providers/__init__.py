from ai.providers.base import AIProvider
from ai.providers.anthropic import AnthropicProvider


def _looks_like_provider_model(provider_name: str, model_id: str | None) -> bool:
    if not model_id:
        return False
    m = model_id.strip().lower()
    if not m:
        return False
    if provider_name == "anthropic":
        return "claude" in m
    return True


def get_provider(
    provider_name: str,
    api_key: str,
    reasoning_model: str | None = None,
    max_tokens: int | None = None,
    timeout_seconds: float = 120,
) -> AIProvider:
    providers = {
        "anthropic": AnthropicProvider,
    }
    name = (provider_name or "").strip().lower()
    cls = providers.get(name)
    if not cls:
        raise ValueError(f"Unknown provider: {provider_name}")

    safe_reasoning = reasoning_model if _looks_like_provider_model(name, reasoning_model) else None
    return cls(
        api_key=api_key,
        reasoning_model=safe_reasoning,
        max_tokens=max_tokens,
        timeout_seconds=timeout_seconds,
    )
