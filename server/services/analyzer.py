"""
AI Normalizer

Turns GitHub metadata into a structured code-health report by prompting a
hosted text-generation provider and normalizing whatever text comes back.

analyze_repository() never raises: any failure along the way (no provider,
provider error, unparseable or incomplete JSON) degrades to a fixed
fallback result so a completed analysis always has a usable payload.
"""

import json
import logging
import re

from pydantic import ValidationError as PydanticValidationError

from errors import NoProviderConfigured, ParseFailure, ValidationFailure
from schemas import AnalysisResult, CodeHealth, Issue, Metrics, Recommendation
from services.github import RepoInfo, RepoIssue
from services.metrics import MetricsCalculator
from services.providers import TextProvider

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("codeHealth", "issues", "recommendations", "metrics")
MAX_SAMPLE_ISSUES = 10

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\n?")
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


def build_prompt(repo_info: RepoInfo, languages: dict[str, int], issues: list[RepoIssue]) -> str:
    sample_issues = "\n".join(
        f"{idx}. {issue.title} ({issue.state})"
        for idx, issue in enumerate(issues[:MAX_SAMPLE_ISSUES], start=1)
    )

    return f"""Analyze this GitHub repository and provide detailed insights:

Repository: {repo_info.full_name}
Description: {repo_info.description or 'No description'}
Primary Language: {repo_info.language}
Stars: {repo_info.stars}
Forks: {repo_info.forks}
Languages Used: {json.dumps(languages, indent=2)}
Open Issues Count: {len(issues)}

Sample Issues (first {MAX_SAMPLE_ISSUES}):
{sample_issues}

Please analyze this repository and provide:
1. **Code Health Score** (0-100) with explanation
2. **Top 5 Issues** - potential problems or areas needing attention
3. **5 Actionable Recommendations** - specific improvements for the team
4. **Estimated Metrics** - reasonable estimates based on the data

IMPORTANT: Respond ONLY with valid JSON in this exact format (no markdown, no code blocks, just pure JSON):

{{
  "codeHealth": {{
    "score": 85,
    "summary": "Overall healthy codebase with good community engagement. Some areas need attention."
  }},
  "issues": [
    {{
      "type": "Documentation",
      "severity": "low" | "medium" | "high" | "critical",
      "file": "general",
      "message": "Issue description here",
      "suggestion": "How to fix it"
    }}
  ],
  "recommendations": [
    {{
      "category": "testing",
      "priority": "low" | "medium" | "high",
      "title": "Recommendation title",
      "description": "Detailed description",
      "impact": "Expected positive outcome"
    }}
  ],
  "metrics": {{
    "linesOfCode": 50000,
    "filesCount": 500,
    "avgComplexity": 7,
    "dependencies": 30
  }}
}}

Respond with ONLY the JSON object, nothing else."""


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers anywhere in the text and trim."""
    return CODE_FENCE_PATTERN.sub("", text).strip()


def parse_model_json(text: str) -> dict:
    """
    Extract and validate the JSON object embedded in a model response.

    The response may be wrapped in code fences or surrounded by prose; the
    span from the first '{' to the last '}' is parsed.

    Raises:
        ParseFailure: no brace-delimited span, or it is not valid JSON
        ValidationFailure: one of the required top-level fields is missing
    """
    cleaned = strip_code_fences(text or "")

    match = JSON_OBJECT_PATTERN.search(cleaned)
    if not match:
        raise ParseFailure("Invalid AI response format: no JSON object found")

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ParseFailure(f"Invalid AI response format: {e}") from e

    if not isinstance(parsed, dict):
        raise ParseFailure("Invalid AI response format: top-level value is not an object")

    missing = [key for key in REQUIRED_FIELDS if parsed.get(key) is None]
    if missing:
        raise ValidationFailure(f"Missing required fields in AI response: {', '.join(missing)}")

    return parsed


def _as_number(value) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _clean_item(item: dict, level_key: str) -> dict:
    item = dict(item)
    if isinstance(item.get(level_key), str):
        item[level_key] = item[level_key].strip().lower()
    if "file" in item and not item["file"]:
        item["file"] = "general"
    return item


def _valid_items(items, model, level_key: str, label: str) -> list:
    """Validate list items one by one, dropping the ones that do not fit."""
    if not isinstance(items, list):
        raise ValidationFailure(f"'{label}' in AI response is not a list")

    valid = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            logger.warning(f"Dropping {label}[{index}] from AI response: not an object")
            continue
        try:
            valid.append(model.model_validate(_clean_item(item, level_key)))
        except PydanticValidationError as e:
            logger.warning(f"Dropping {label}[{index}] from AI response: {e.error_count()} invalid field(s)")
    return valid


def normalize_result(parsed: dict) -> AnalysisResult:
    """
    Coerce a parsed model response into an AnalysisResult.

    Small slips are repaired (fractional or string scores, upper-case
    severities, null file) and individually broken issues or
    recommendations are dropped. A missing or non-numeric score, or
    unusable metrics, raise ValidationFailure.
    """
    code_health = parsed["codeHealth"]
    if not isinstance(code_health, dict):
        raise ValidationFailure("'codeHealth' in AI response is not an object")

    score = _as_number(code_health.get("score"))
    if score is None:
        raise ValidationFailure(f"codeHealth.score is not numeric: {code_health.get('score')!r}")

    metrics = parsed["metrics"]
    if not isinstance(metrics, dict):
        raise ValidationFailure("'metrics' in AI response is not an object")
    metrics = dict(metrics)
    for key in ("linesOfCode", "filesCount", "dependencies", "vulnerabilities"):
        number = _as_number(metrics.get(key))
        if number is not None:
            metrics[key] = round(number)

    try:
        return AnalysisResult(
            code_health=CodeHealth.model_validate(
                dict(code_health, score=min(100, max(0, round(score))), summary=code_health.get("summary") or "")
            ),
            issues=_valid_items(parsed["issues"], Issue, "severity", "issues"),
            recommendations=_valid_items(parsed["recommendations"], Recommendation, "priority", "recommendations"),
            metrics=Metrics.model_validate(metrics),
        )
    except PydanticValidationError as e:
        raise ValidationFailure(f"AI response does not match the result schema: {e}") from e


def fallback_result(repo_info: RepoInfo) -> AnalysisResult:
    """Fixed degraded result used whenever the AI step cannot produce one."""
    return AnalysisResult(
        code_health=CodeHealth(
            score=75,
            summary="Analysis completed with basic metrics. Repository appears to be active and maintained.",
        ),
        issues=[
            Issue(
                type="General",
                severity="low",
                file="general",
                message="AI analysis encountered an issue. Manual review recommended.",
                suggestion="Review the repository manually for specific issues.",
            )
        ],
        recommendations=[
            Recommendation(
                category="general",
                priority="medium",
                title="Improve documentation",
                description="Consider adding more comprehensive documentation for better maintainability.",
                impact="Improved developer onboarding and code understanding",
            )
        ],
        metrics=MetricsCalculator.estimate_metrics(repo_info.size),
    )


async def analyze_repository(
    repo_info: RepoInfo,
    languages: dict[str, int],
    issues: list[RepoIssue],
    provider: TextProvider | None,
) -> AnalysisResult:
    """Run one provider call over the repository metadata. Never raises."""
    response_text = ""

    try:
        if provider is None:
            raise NoProviderConfigured()

        prompt = build_prompt(repo_info, languages, issues)
        response_text = await provider.generate_text(prompt)

        return normalize_result(parse_model_json(response_text))

    except Exception as e:
        logger.warning(
            f"AI analysis of {repo_info.full_name} fell back to default result: {e.__class__.__name__}: {e}",
            extra={"repository": repo_info.full_name},
        )
        if response_text:
            logger.warning(f"Response text: {response_text[:2000]}")
        return fallback_result(repo_info)
