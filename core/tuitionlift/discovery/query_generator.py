"""
Search query generation from an anonymized profile.

``TemplateQueryGenerator`` is deterministic and needs no credentials.
``LiteLLMQueryGenerator`` asks a model (any provider LiteLLM supports) for
3-5 distinct queries and validates the answer strictly.
"""

import json
import logging
from typing import Any

import litellm

from tuitionlift.discovery.base import AnonymizedProfile, QueryGenerator
from tuitionlift.schemas.profile import IncomeBracket

logger = logging.getLogger(__name__)

MIN_QUERIES = 3
MAX_QUERIES = 5

_NEED_BRACKETS = {IncomeBracket.LOW, IncomeBracket.MODERATE}

SYSTEM_PROMPT = """You are a scholarship search assistant.
Generate 3-5 distinct search queries for finding scholarships.
Each query must take a different angle:
need-based, field-specific, Pell-eligible, merit, activities.
Focus on scholarships for the current and next academic year.
Use only the anonymized profile attributes provided. Never include names or specific dollar amounts.
Each query should be 5-15 words.
Respond with JSON only: {"queries": ["...", "..."]}"""

MERIT_FIRST_HINT = """IMPORTANT: This student qualifies for merit-first discovery.
Prioritize queries with "merit-based", "need-blind", "academic achievement"
and "scholarship for high achievers" angles."""


def describe_profile(profile: AnonymizedProfile) -> str:
    """Render the anonymized profile as a single prompt line."""
    parts = []
    if profile.gpa is not None:
        parts.append(f"GPA: {profile.gpa:.2f}")
    if profile.major:
        parts.append(f"Major: {profile.major}")
    if profile.income_bracket:
        parts.append(f"Income bracket: {profile.income_bracket}")
    if profile.pell_eligible is not None:
        parts.append(
            f"Pell status: {'Pell eligible' if profile.pell_eligible else 'Not Pell eligible'}"
        )
    if profile.sai_band:
        parts.append(f"SAI band: {profile.sai_band}")
    if profile.spikes:
        parts.append(f"Activities: {', '.join(profile.spikes)}")
    return "; ".join(parts) if parts else "No profile attributes available"


class TemplateQueryGenerator(QueryGenerator):
    """Builds 3-5 queries from fixed templates."""

    async def generate(self, profile: AnonymizedProfile) -> list[str]:
        field = profile.major or "undergraduate"
        queries = []
        if profile.merit_first:
            queries += [
                f"merit-based need-blind scholarships {field} academic achievement",
                f"scholarships for high achievers {field} students",
            ]
        queries += [
            f"{field} scholarships for college students",
            f"scholarships for {field} majors application open",
        ]

        if profile.pell_eligible or profile.income_bracket in _NEED_BRACKETS:
            queries.append(f"need-based scholarships {field} Pell eligible students")
        elif profile.income_bracket is not None:
            queries.append(f"merit-based scholarships {field} academic achievement")
        else:
            queries.append(f"need-based and merit scholarships {field} students")

        if profile.sai_band:
            queries.append(f"scholarships for students with SAI {profile.sai_band} {field}")

        if profile.gpa is not None and profile.gpa >= 3.5:
            queries.append(f"high GPA merit scholarships {field}")
        elif profile.spikes and not profile.spikes[0].startswith("{{"):
            queries.append(f"{profile.spikes[0]} scholarships for college students")

        return _normalize(queries)[:MAX_QUERIES]


class LiteLLMQueryGenerator(QueryGenerator):
    """
    Generates queries with an LLM via ``litellm.acompletion``.

    Args:
        model: LiteLLM model string, e.g. "openai/gpt-4o-mini"
        temperature: Sampling temperature
        api_key: Optional provider key (LiteLLM falls back to its env vars)
    """

    def __init__(self, model: str, temperature: float = 0.3, api_key: str | None = None):
        self.model = model
        self.temperature = temperature
        self.api_key = api_key

    async def generate(self, profile: AnonymizedProfile) -> list[str]:
        merit_hint = f"\n\n{MERIT_FIRST_HINT}" if profile.merit_first else ""
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f"Profile: {describe_profile(profile)}{merit_hint}\n\n"
                        "Generate 3-5 distinct scholarship search queries."
                    ),
                },
            ],
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key

        response = await litellm.acompletion(**kwargs)
        content = response.choices[0].message.content or ""
        queries = parse_queries(content)
        logger.info(f"Generated {len(queries)} search queries with {self.model}")
        return queries


def parse_queries(content: str) -> list[str]:
    """
    Validate an LLM answer of the form ``{"queries": [...]}``.

    Raises:
        ValueError: Not JSON, wrong shape, or not 3-5 distinct non-empty strings
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"Query generator returned invalid JSON: {e}") from e

    raw = data.get("queries") if isinstance(data, dict) else None
    if not isinstance(raw, list) or not all(isinstance(q, str) for q in raw):
        raise ValueError("Query generator response must contain a 'queries' list of strings")

    queries = _normalize(raw)
    if not MIN_QUERIES <= len(queries) <= MAX_QUERIES:
        raise ValueError(
            f"Expected {MIN_QUERIES}-{MAX_QUERIES} distinct queries, got {len(queries)}"
        )
    return queries


def _normalize(queries: list[str]) -> list[str]:
    seen = set()
    result = []
    for query in queries:
        text = " ".join(query.split())
        key = text.lower()
        if text and key not in seen:
            seen.add(key)
            result.append(text)
    return result
