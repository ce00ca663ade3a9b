import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from ai.feed_models import (
    AnalysisResult,
    FeedScanRequest,
    REQUIRED_RESULT_FIELDS,
    describe_validation_errors,
)
from ai.feed_prompt import build_feed_prompt
from ai.providers.base import AIProvider
from services.errors import ParseError, ScanValidationError, SchemaViolationError, UpstreamError
from utils.image_utils import decode_image_payload

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"```(?:json)?")


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers and surrounding whitespace."""
    return _CODE_FENCE_RE.sub("", text or "").strip()


def extract_reply_text(envelope: Any) -> str:
    """Return the text of the first content block of a Messages API response."""
    content = envelope.get("content") if isinstance(envelope, dict) else None
    if not isinstance(content, list) or not content:
        raise UpstreamError("No response from model", raw=envelope, status_code=500)
    first = content[0]
    text = first.get("text") if isinstance(first, dict) else None
    if not isinstance(text, str):
        raise UpstreamError("No response from model", raw=envelope, status_code=500)
    return text


def parse_analysis_text(text: str) -> Any:
    clean = strip_code_fences(text)
    try:
        return json.loads(clean)
    except json.JSONDecodeError as exc:
        logger.warning(f"Feed analysis reply is not valid JSON ({exc}): {text[:500]!r}")
        raise ParseError(f"Model reply is not valid JSON: {exc}", raw=text) from exc


def check_analysis_schema(data: Any) -> list[str]:
    """List the ways ``data`` departs from the AnalysisResult shape.

    Type checks only. Values such as matchScore are never range-checked.
    """
    if not isinstance(data, dict):
        return [f"<root>: expected a JSON object, got {type(data).__name__}"]

    issues = [f"{field}: missing" for field in REQUIRED_RESULT_FIELDS if data.get(field) is None]
    try:
        AnalysisResult.model_validate(data)
    except ValidationError as exc:
        issues.extend(describe_validation_errors(exc.errors()))
    return issues


class FeedScanAnalyzer:
    """Sends a feed label photo plus horse context to a vision model and
    returns the parsed assessment.

    Holds no per-request state, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        provider: AIProvider,
        model: str | None = None,
        max_tokens: int | None = None,
        sponsor_brand: str = "Purina",
        strict_schema: bool = False,
        default_media_type: str = "image/jpeg",
        max_image_bytes: int | None = None,
    ):
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens
        self.sponsor_brand = sponsor_brand
        self.strict_schema = strict_schema
        self.default_media_type = default_media_type
        self.max_image_bytes = max_image_bytes

    def build_prompt(self, request: FeedScanRequest) -> str:
        return build_feed_prompt(request.horse, self.sponsor_brand)

    async def analyze(self, request: FeedScanRequest) -> dict:
        if not (request.image_base64 or "").strip():
            raise ScanValidationError("No image provided")
        try:
            image_bytes, media_type = decode_image_payload(
                request.image_base64,
                media_type=request.media_type,
                default_media_type=self.default_media_type,
                max_bytes=self.max_image_bytes,
            )
        except ValueError as exc:
            raise ScanValidationError(str(exc)) from exc

        prompt = self.build_prompt(request)
        model = self.model or self.provider.get_reasoning_model()
        logger.info(
            f"Feed scan: model={model} image={len(image_bytes)}B type={media_type} "
            f"horse={'yes' if request.horse else 'no'}"
        )

        result = await self.provider.chat_with_vision(
            messages=[{"role": "user", "content": prompt}],
            image_bytes=image_bytes,
            model=model,
            media_type=media_type,
            max_tokens=self.max_tokens,
        )
        logger.info(
            f"Feed scan usage: tokens_in={result.get('tokens_in', 0)} tokens_out={result.get('tokens_out', 0)}"
        )

        text = extract_reply_text(result.get("raw", result))
        data = parse_analysis_text(text)

        issues = check_analysis_schema(data)
        if issues:
            if self.strict_schema or not isinstance(data, dict):
                raise SchemaViolationError(issues)
            logger.warning(f"Feed analysis has schema issues: {'; '.join(issues)}")
        return data
