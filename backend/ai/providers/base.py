from abc import ABC, abstractmethod


class AIProvider(ABC):
    """Abstract base class for vision-capable AI providers."""

    DEFAULT_REASONING_MODEL = ""
    DEFAULT_MAX_TOKENS = 2000

    def __init__(
        self,
        api_key: str,
        reasoning_model: str | None = None,
        max_tokens: int | None = None,
        timeout_seconds: float = 120,
    ):
        self.api_key = api_key
        self._reasoning_model = reasoning_model
        self._max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    @abstractmethod
    async def chat_with_vision(
        self,
        messages: list[dict],
        image_bytes: bytes,
        model: str,
        system: str = "",
        media_type: str | None = None,
        max_tokens: int | None = None,
    ) -> dict:
        """Send a chat request that includes an image.

        Args:
            messages: List of message dicts with role and content.
            image_bytes: Raw image bytes.
            model: Model identifier to use.
            system: Optional system prompt.
            media_type: MIME type of the image; sniffed from the bytes when omitted.
            max_tokens: Output token budget; provider default when omitted.

        Returns:
            dict with content, tokens_in, tokens_out, model and the raw
            response envelope under ``raw``.
        """
        ...

    def get_reasoning_model(self) -> str:
        """Return the reasoning (higher-capability) model identifier."""
        return self._reasoning_model or self.DEFAULT_REASONING_MODEL

    def get_max_tokens(self) -> int:
        return int(self._max_tokens or self.DEFAULT_MAX_TOKENS)
