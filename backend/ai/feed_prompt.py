from ai.feed_models import HorseProfile

GENERAL_ASSESSMENT_CONTEXT = "No specific horse profile provided - give general assessment."

HORSE_CONTEXT_TEMPLATE = """
Horse Profile Being Matched:
- Name: {name}
- Age: {age} years old
- Breed: {breed}
- Weight: {weight} lbs
- Primary Use: {primary_use}
- Body Condition Score: {bcs}/9 (1=emaciated, 5=ideal, 9=obese)
- Health Flags: {health_flags}
"""

FEED_ANALYSIS_PROMPT = """You are Dr. Robert, an equine veterinarian with 20+ years of experience and deep expertise in equine nutrition.

Analyze this horse feed tag image carefully.

{horse_context}

Return ONLY a valid JSON object with no markdown, no explanation, just raw JSON:
{{
  "feedName": "exact product name from label",
  "brand": "brand name",
  "intendedUse": "what this feed is designed for",
  "nutrients": {{
    "crudeProtein": "X%",
    "crudeFat": "X%",
    "crudeFiber": "X%",
    "moisture": "X%",
    "nsc": "low/medium/high",
    "sugar": "value if listed or null",
    "starch": "value if listed or null",
    "calcium": "value if listed or null",
    "phosphorus": "value if listed or null"
  }},
  "keyIngredients": ["top 5 ingredients in order"],
  "matchScore": <integer 0-100>,
  "verdict": "one clear sentence about this feed for this specific horse",
  "warnings": ["specific concern 1", "specific concern 2"],
  "positives": ["what this feed does well for this horse"],
  "recommendations": [
    {{
      "name": "Better feed product name",
      "brand": "{sponsor_brand} or other",
      "reason": "why it is better for this specific horse",
      "matchScore": <integer>,
      "estimatedCostPerLb": "$X.XX"
    }}
  ],
  "feedingRecommendation": "Specific daily amount in lbs, frequency, and any special instructions for this horse based on their weight, BCS, and activity level",
  "dailyAmountLbs": <number>
}}

Be a real veterinarian here. Flag molasses for IR horses. Flag high NSC for easy keepers. Flag low fat for hard keepers. Recommend {sponsor_brand} alternatives first when applicable since this app is used at {sponsor_brand} feed stores."""


def _display(value, placeholder: str = "unknown") -> str:
    if value is None:
        return placeholder
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    return text or placeholder


def build_horse_context(horse: HorseProfile | None) -> str:
    """Render the per-horse block of the prompt, or the general-assessment line."""
    if horse is None:
        return GENERAL_ASSESSMENT_CONTEXT
    flags = [f.strip() for f in horse.health_flags if f and f.strip()]
    return HORSE_CONTEXT_TEMPLATE.format(
        name=_display(horse.name),
        age=_display(horse.age),
        breed=_display(horse.breed),
        # A weight of 0 is as good as missing
        weight=_display(horse.weight_lbs or None),
        primary_use=_display(horse.primary_use),
        bcs=_display(horse.bcs),
        health_flags=", ".join(flags) if flags else "None",
    )


def build_feed_prompt(horse: HorseProfile | None, sponsor_brand: str = "Purina") -> str:
    return FEED_ANALYSIS_PROMPT.format(
        horse_context=build_horse_context(horse),
        sponsor_brand=(sponsor_brand or "Purina").strip(),
    )
