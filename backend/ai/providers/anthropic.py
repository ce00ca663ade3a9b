import base64
import logging

import httpx

from ai.providers.base import AIProvider
from services.errors import UpstreamError
from utils.image_utils import sniff_image_format

logger = logging.getLogger(__name__)


class AnthropicProvider(AIProvider):
    """Anthropic / Claude AI provider."""

    BASE_URL = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"
    DEFAULT_REASONING_MODEL = "claude-sonnet-4-20250514"

    def __init__(
        self,
        api_key: str,
        reasoning_model: str | None = None,
        max_tokens: int | None = None,
        timeout_seconds: float = 120,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_key, reasoning_model, max_tokens, timeout_seconds)
        self._transport = transport
        self._headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.API_VERSION,
            "content-type": "application/json",
        }

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------
    async def _create_message(self, payload: dict) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                resp = await client.post(
                    self.BASE_URL,
                    headers=self._headers,
                    json=payload,
                )
        except httpx.HTTPError as exc:
            logger.error(f"Anthropic request failed: {exc}")
            raise UpstreamError("Model request failed", details=str(exc)) from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError(
                "Malformed response from model",
                raw=resp.text[:2000],
                details=f"HTTP {resp.status_code}",
            ) from exc

        if resp.status_code != 200:
            logger.error(f"Anthropic API error: HTTP {resp.status_code}")
            raise UpstreamError(
                "Model request failed",
                raw=data,
                details=f"Anthropic API error: HTTP {resp.status_code}",
            )
        if not isinstance(data, dict):
            raise UpstreamError("Malformed response from model", raw=data)
        return data

    # ------------------------------------------------------------------
    # chat_with_vision
    # ------------------------------------------------------------------
    async def chat_with_vision(
        self,
        messages: list[dict],
        image_bytes: bytes,
        model: str,
        system: str = "",
        media_type: str | None = None,
        max_tokens: int | None = None,
    ) -> dict:
        b64 = base64.b64encode(image_bytes).decode("utf-8")

        image_block = {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": media_type or sniff_image_format(image_bytes) or "image/jpeg",
                "data": b64,
            },
        }

        # Image goes ahead of the text in every user message
        vision_messages = []
        for msg in messages:
            if msg["role"] == "user":
                text_content = msg.get("content", "")
                if isinstance(text_content, str):
                    vision_messages.append({
                        "role": "user",
                        "content": [
                            image_block,
                            {"type": "text", "text": text_content},
                        ],
                    })
                else:
                    vision_messages.append(msg)
            else:
                vision_messages.append(msg)

        payload: dict = {
            "model": model,
            "max_tokens": int(max_tokens or self.get_max_tokens()),
            "messages": vision_messages,
        }
        if system:
            payload["system"] = system

        data = await self._create_message(payload)

        content = ""
        for block in data.get("content") or []:
            if isinstance(block, dict) and block.get("type") == "text":
                content += block.get("text") or ""

        usage = data.get("usage") or {}
        return {
            "content": content,
            "tokens_in": usage.get("input_tokens", 0),
            "tokens_out": usage.get("output_tokens", 0),
            "model": data.get("model", payload["model"]),
            "raw": data,
        }
