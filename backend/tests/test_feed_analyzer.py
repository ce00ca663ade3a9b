from __future__ import annotations

import asyncio
import base64
import json
import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ai.feed_analyzer import FeedScanAnalyzer, check_analysis_schema, strip_code_fences  # noqa: E402
from ai.feed_models import FeedScanRequest, HorseProfile  # noqa: E402
from ai.providers.base import AIProvider  # noqa: E402
from services.errors import (  # noqa: E402
    ParseError,
    ScanValidationError,
    SchemaViolationError,
    UpstreamError,
)


JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32
IMAGE_B64 = base64.b64encode(JPEG_BYTES).decode()

PROBALANCE_RESULT = {
    "feedName": "ProBalance 14%",
    "brand": "Acme Feeds",
    "intendedUse": "Performance horses",
    "nutrients": {
        "crudeProtein": "14%",
        "crudeFat": "4%",
        "crudeFiber": "12%",
        "moisture": "12%",
        "nsc": "high",
        "sugar": None,
        "starch": None,
        "calcium": "0.8%",
        "phosphorus": "0.5%",
    },
    "keyIngredients": ["oats", "corn", "molasses", "soybean meal", "wheat middlings"],
    "matchScore": 38,
    "verdict": "Too much sugar for an insulin resistant easy keeper.",
    "warnings": ["Flag molasses: cane molasses is the third ingredient", "NSC is high"],
    "positives": ["Adequate protein"],
    "recommendations": [
        {
            "name": "Purina WellSolve L/S",
            "brand": "Purina",
            "reason": "Low starch and sugar",
            "matchScore": 92,
            "estimatedCostPerLb": "$0.85",
        }
    ],
    "feedingRecommendation": "Switch gradually; feed 2 lbs per day split into two meals.",
    "dailyAmountLbs": 2,
}


class FakeVisionProvider(AIProvider):
    DEFAULT_REASONING_MODEL = "claude-test-model"

    def __init__(self, reply_text: str | None = None, envelope: dict | None = None):
        super().__init__(api_key="test-key")
        if envelope is None:
            envelope = {"content": [{"type": "text", "text": reply_text}], "usage": {"input_tokens": 5, "output_tokens": 7}}
        self.envelope = envelope
        self.calls: list[dict] = []

    async def chat_with_vision(self, messages, image_bytes, model, system="", media_type=None, max_tokens=None):
        self.calls.append(
            {
                "messages": messages,
                "image_bytes": image_bytes,
                "model": model,
                "media_type": media_type,
                "max_tokens": max_tokens,
            }
        )
        return {"content": "", "tokens_in": 5, "tokens_out": 7, "model": model, "raw": self.envelope}


def _fenced(payload: dict) -> str:
    return "```json\n" + json.dumps(payload, indent=2) + "\n```"


def _biscuit() -> HorseProfile:
    return HorseProfile(id=3, name="Biscuit", age=9, bcs=7, health_flags=["insulin resistant"])


def _analyze(analyzer: FeedScanAnalyzer, **request_fields):
    request_fields.setdefault("imageBase64", IMAGE_B64)
    return asyncio.run(analyzer.analyze(FeedScanRequest(**request_fields)))


def test_missing_image_fails_before_any_model_call():
    provider = FakeVisionProvider(_fenced(PROBALANCE_RESULT))
    analyzer = FeedScanAnalyzer(provider)
    for empty in (None, "", "   "):
        with pytest.raises(ScanValidationError) as exc:
            _analyze(analyzer, imageBase64=empty)
        assert exc.value.message == "No image provided"
        assert exc.value.status_code == 400
    assert provider.calls == []


def test_undecodable_or_oversized_image_is_a_client_error():
    provider = FakeVisionProvider(_fenced(PROBALANCE_RESULT))
    with pytest.raises(ScanValidationError):
        _analyze(FeedScanAnalyzer(provider), imageBase64="not base64 at all!!")
    with pytest.raises(ScanValidationError):
        _analyze(FeedScanAnalyzer(provider, max_image_bytes=8))
    assert provider.calls == []


def test_fenced_reply_parses_into_every_field():
    provider = FakeVisionProvider(_fenced(PROBALANCE_RESULT))
    result = _analyze(FeedScanAnalyzer(provider))
    assert result == PROBALANCE_RESULT
    assert len(provider.calls) == 1
    assert provider.calls[0]["image_bytes"] == JPEG_BYTES


def test_bare_fence_and_plain_json_replies_parse():
    plain = FakeVisionProvider(json.dumps(PROBALANCE_RESULT))
    assert _analyze(FeedScanAnalyzer(plain)) == PROBALANCE_RESULT
    bare = FakeVisionProvider("```\n" + json.dumps(PROBALANCE_RESULT) + "```\n")
    assert _analyze(FeedScanAnalyzer(bare)) == PROBALANCE_RESULT


@pytest.mark.parametrize(
    "reply",
    [
        '```json\n{"feedName": "ProBalance 14%", "brand": \n```',
        'Here is my assessment: {"feedName": "ProBalance 14%"}',
    ],
)
def test_unparseable_reply_raises_parse_error_with_raw_text(reply):
    provider = FakeVisionProvider(reply)
    with pytest.raises(ParseError) as exc:
        _analyze(FeedScanAnalyzer(provider))
    assert exc.value.raw == reply
    assert exc.value.to_response()["raw"] == reply
    assert exc.value.to_response()["error"] == "Analysis failed"


def test_out_of_range_match_score_passes_through_unchanged():
    for score in (140, -5):
        payload = dict(PROBALANCE_RESULT, matchScore=score)
        provider = FakeVisionProvider(_fenced(payload))
        result = _analyze(FeedScanAnalyzer(provider, strict_schema=True))
        assert result["matchScore"] == score


def test_envelope_without_content_is_upstream_error():
    for envelope in (
        {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}},
        {"content": []},
        {"content": [{"type": "tool_use", "id": "x"}]},
    ):
        provider = FakeVisionProvider(envelope=envelope)
        with pytest.raises(UpstreamError) as exc:
            _analyze(FeedScanAnalyzer(provider))
        assert exc.value.message == "No response from model"
        assert exc.value.raw == envelope
        assert exc.value.to_response()["raw"] == envelope


def test_non_object_reply_is_schema_violation():
    provider = FakeVisionProvider("[1, 2, 3]")
    with pytest.raises(SchemaViolationError):
        _analyze(FeedScanAnalyzer(provider))


def test_missing_fields_tolerated_unless_strict():
    partial = {"feedName": "Mystery Pellet", "matchScore": 50}
    lenient = FakeVisionProvider(_fenced(partial))
    assert _analyze(FeedScanAnalyzer(lenient)) == partial

    strict = FakeVisionProvider(_fenced(partial))
    with pytest.raises(SchemaViolationError) as exc:
        _analyze(FeedScanAnalyzer(strict, strict_schema=True))
    assert "brand: missing" in exc.value.issues


def test_schema_check_reports_wrong_types():
    bad = dict(PROBALANCE_RESULT, warnings="molasses")
    issues = check_analysis_schema(bad)
    assert any(issue.startswith("warnings") for issue in issues)
    assert check_analysis_schema(PROBALANCE_RESULT) == []


def test_media_type_defaults_and_is_not_checked_against_bytes():
    provider = FakeVisionProvider(_fenced(PROBALANCE_RESULT))
    analyzer = FeedScanAnalyzer(provider)
    _analyze(analyzer)
    _analyze(analyzer, mediaType="image/webp")
    _analyze(analyzer, imageBase64=f"data:image/png;base64,{IMAGE_B64}")
    assert [c["media_type"] for c in provider.calls] == ["image/jpeg", "image/webp", "image/png"]


def test_biscuit_scenario_surfaces_molasses_warning():
    provider = FakeVisionProvider(_fenced(PROBALANCE_RESULT))
    analyzer = FeedScanAnalyzer(provider, model="claude-scan", max_tokens=2000)
    result = _analyze(analyzer, horse=_biscuit(), userId=12)

    assert any("molasses" in w.lower() for w in result["warnings"])
    assert result["nutrients"]["crudeProtein"] == "14%"

    call = provider.calls[0]
    prompt = call["messages"][0]["content"]
    assert call["model"] == "claude-scan"
    assert call["max_tokens"] == 2000
    assert "- Name: Biscuit" in prompt
    assert "7/9" in prompt
    assert "insulin resistant" in prompt


def test_model_falls_back_to_provider_default():
    provider = FakeVisionProvider(_fenced(PROBALANCE_RESULT))
    _analyze(FeedScanAnalyzer(provider))
    assert provider.calls[0]["model"] == "claude-test-model"


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}```  ') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1}\n') == '{"a": 1}'
    # Language tag match is case-sensitive; only the backticks go.
    assert strip_code_fences("```JSON\n{}```") == "JSON\n{}"
