from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HorseProfile(BaseModel):
    """Horse context sent along with a feed scan. Snake_case on the wire."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    name: Optional[str] = None
    age: Optional[float] = None
    breed: Optional[str] = None
    weight_lbs: Optional[float] = None
    primary_use: Optional[str] = None
    bcs: Optional[int] = None
    health_flags: list[str] = Field(default_factory=list)

    @field_validator("health_flags", mode="before")
    @classmethod
    def _null_flags_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class FeedScanRequest(BaseModel):
    """Body of POST /api/analyze-feed."""

    model_config = ConfigDict(populate_by_name=True)

    image_base64: Optional[str] = Field(default=None, alias="imageBase64")
    media_type: Optional[str] = Field(default=None, alias="mediaType")
    horse: Optional[HorseProfile] = None
    user_id: Optional[int] = Field(default=None, alias="userId")


# ---------------------------------------------------------------------------
# Expected shape of the model reply. Used to report schema issues only; the
# parsed dict itself is what callers receive.
# ---------------------------------------------------------------------------

Scalar = Union[str, int, float, None]


class Nutrients(BaseModel):
    model_config = ConfigDict(extra="allow")

    crudeProtein: Scalar = None
    crudeFat: Scalar = None
    crudeFiber: Scalar = None
    moisture: Scalar = None
    nsc: Scalar = None
    sugar: Scalar = None
    starch: Scalar = None
    calcium: Scalar = None
    phosphorus: Scalar = None


class FeedRecommendation(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    brand: Optional[str] = None
    reason: Optional[str] = None
    matchScore: Optional[float] = None
    estimatedCostPerLb: Scalar = None


class AnalysisResult(BaseModel):
    # No bounds on matchScore: the model's number is passed through as-is.
    model_config = ConfigDict(extra="allow")

    feedName: Optional[str] = None
    brand: Optional[str] = None
    intendedUse: Optional[str] = None
    nutrients: Optional[Nutrients] = None
    keyIngredients: Optional[list[str]] = None
    matchScore: Optional[float] = None
    verdict: Optional[str] = None
    warnings: Optional[list[str]] = None
    positives: Optional[list[str]] = None
    recommendations: Optional[list[FeedRecommendation]] = None
    feedingRecommendation: Optional[str] = None
    dailyAmountLbs: Optional[float] = None


REQUIRED_RESULT_FIELDS: tuple[str, ...] = (
    "feedName",
    "brand",
    "nutrients",
    "matchScore",
    "verdict",
    "warnings",
    "positives",
    "recommendations",
    "feedingRecommendation",
)


def describe_validation_errors(errors: list[dict[str, Any]]) -> list[str]:
    issues: list[str] = []
    for err in errors:
        loc = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
        issues.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return issues
