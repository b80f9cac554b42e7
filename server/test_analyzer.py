"""Tests for prompt construction and AI response normalization."""
import asyncio
import json

import pytest

from conftest import VALID_RESPONSE, FakeProvider, make_repo_info
from errors import ParseFailure, ValidationFailure
from services.analyzer import (
    analyze_repository,
    build_prompt,
    fallback_result,
    normalize_result,
    parse_model_json,
    strip_code_fences,
)
from services.github import RepoIssue

LANGUAGES = {"Python": 9000, "HTML": 300}
ISSUES = [RepoIssue(number=i, title=f"Issue number {i}", state="open") for i in range(1, 16)]


def run(coro):
    return asyncio.run(coro)


class TestParseModelJson:

    def test_plain_json(self):
        assert parse_model_json(json.dumps(VALID_RESPONSE)) == VALID_RESPONSE

    def test_fenced_json_matches_unfenced(self):
        raw = json.dumps(VALID_RESPONSE, indent=2)
        fenced = f"```json\n{raw}\n```"

        assert parse_model_json(fenced) == parse_model_json(raw)

    def test_bare_fence(self):
        fenced = f"```\n{json.dumps(VALID_RESPONSE)}\n```"
        assert parse_model_json(fenced)["codeHealth"]["score"] == 82

    def test_surrounding_prose(self):
        text = f"Sure! Here is the analysis:\n{json.dumps(VALID_RESPONSE)}\nLet me know if you need more."
        assert parse_model_json(text)["metrics"]["linesOfCode"] == 42000

    def test_no_json_object(self):
        with pytest.raises(ParseFailure):
            parse_model_json("I could not analyze this repository.")

    def test_truncated_json(self):
        truncated = json.dumps(VALID_RESPONSE)[:-40]
        with pytest.raises(ParseFailure):
            parse_model_json(truncated)

    def test_empty_response(self):
        with pytest.raises(ParseFailure):
            parse_model_json("")

    @pytest.mark.parametrize("missing", ["codeHealth", "issues", "recommendations", "metrics"])
    def test_missing_required_field(self, missing):
        payload = {k: v for k, v in VALID_RESPONSE.items() if k != missing}
        with pytest.raises(ValidationFailure, match=missing):
            parse_model_json(json.dumps(payload))

    def test_empty_lists_are_present(self):
        payload = dict(VALID_RESPONSE, issues=[], recommendations=[])
        assert parse_model_json(json.dumps(payload))["issues"] == []


def test_strip_code_fences():
    assert strip_code_fences("```json\n{\"a\": 1}\n```") == '{"a": 1}'
    assert strip_code_fences("  {\"a\": 1}  ") == '{"a": 1}'


class TestBuildPrompt:

    def test_embeds_repository_data(self):
        prompt = build_prompt(make_repo_info(), LANGUAGES, ISSUES)

        assert "Repository: vercel/next.js" in prompt
        assert "Description: The React Framework" in prompt
        assert "Primary Language: JavaScript" in prompt
        assert "Stars: 120000" in prompt
        assert "Forks: 26000" in prompt
        assert '"Python": 9000' in prompt
        assert "Open Issues Count: 15" in prompt
        assert "Respond with ONLY the JSON object" in prompt

    def test_only_first_ten_issues(self):
        prompt = build_prompt(make_repo_info(), LANGUAGES, ISSUES)

        assert "1. Issue number 1 (open)" in prompt
        assert "10. Issue number 10 (open)" in prompt
        assert "Issue number 11" not in prompt

    def test_missing_description(self):
        prompt = build_prompt(make_repo_info(description=None), {}, [])
        assert "Description: No description" in prompt
        assert "Open Issues Count: 0" in prompt


class TestFallback:

    def test_metrics_estimated_from_size(self):
        result = fallback_result(make_repo_info(size=500))

        assert result.code_health.score == 75
        assert result.metrics.lines_of_code == 50000
        assert result.metrics.files_count == 100
        assert result.metrics.avg_complexity == 5
        assert result.metrics.dependencies == 20
        assert len(result.issues) == 1
        assert result.issues[0].severity == "low"
        assert len(result.recommendations) == 1
        assert result.recommendations[0].priority == "medium"

    @pytest.mark.parametrize("size", [None, 0])
    def test_unknown_size_defaults_to_ten_thousand_lines(self, size):
        assert fallback_result(make_repo_info(size=size)).metrics.lines_of_code == 10000


class TestAnalyzeRepository:

    def test_valid_response(self):
        provider = FakeProvider(response=json.dumps(VALID_RESPONSE))

        result = run(analyze_repository(make_repo_info(), LANGUAGES, ISSUES, provider))

        assert result.code_health.score == 82
        assert result.issues[0].file == "src/core.py"
        assert result.recommendations[0].title == "Add CI test runs"
        assert result.metrics.lines_of_code == 42000
        assert len(provider.prompts) == 1

    def test_fenced_response_same_as_plain(self):
        plain = FakeProvider(response=json.dumps(VALID_RESPONSE))
        fenced = FakeProvider(response=f"```json\n{json.dumps(VALID_RESPONSE)}\n```")

        a = run(analyze_repository(make_repo_info(), LANGUAGES, ISSUES, plain))
        b = run(analyze_repository(make_repo_info(), LANGUAGES, ISSUES, fenced))

        assert a == b

    def test_no_provider_returns_fallback(self):
        result = run(analyze_repository(make_repo_info(size=123), LANGUAGES, ISSUES, None))

        assert result.code_health.score == 75
        assert result.metrics.lines_of_code == 12300

    def test_provider_error_returns_fallback(self):
        provider = FakeProvider(error=RuntimeError("503 Service Unavailable"))

        result = run(analyze_repository(make_repo_info(), LANGUAGES, ISSUES, provider))

        assert result == fallback_result(make_repo_info())
        assert len(provider.prompts) == 1

    @pytest.mark.parametrize("missing", ["codeHealth", "issues", "recommendations", "metrics"])
    def test_missing_field_returns_fallback(self, missing):
        payload = {k: v for k, v in VALID_RESPONSE.items() if k != missing}
        provider = FakeProvider(response=json.dumps(payload))

        result = run(analyze_repository(make_repo_info(), LANGUAGES, ISSUES, provider))

        assert result.code_health.score == 75

    def test_unknown_severity_drops_only_that_issue(self):
        payload = json.loads(json.dumps(VALID_RESPONSE))
        payload["issues"].append(dict(payload["issues"][0], severity="catastrophic", message="Other"))
        provider = FakeProvider(response=json.dumps(payload))

        result = run(analyze_repository(make_repo_info(), LANGUAGES, ISSUES, provider))

        assert result.code_health.score == 82
        assert [i.message for i in result.issues] == ["Core module has no tests"]

    @pytest.mark.parametrize("score", ["excellent", None, True])
    def test_non_numeric_score_returns_fallback(self, score):
        payload = json.loads(json.dumps(VALID_RESPONSE))
        payload["codeHealth"]["score"] = score
        provider = FakeProvider(response=json.dumps(payload))

        result = run(analyze_repository(make_repo_info(), LANGUAGES, ISSUES, provider))

        assert result == fallback_result(make_repo_info())

    def test_garbage_response_returns_fallback(self):
        provider = FakeProvider(response="The repository looks great!")

        result = run(analyze_repository(make_repo_info(), LANGUAGES, ISSUES, provider))

        assert result.code_health.score == 75


class TestNormalizeResult:

    def with_changes(self, change):
        payload = json.loads(json.dumps(VALID_RESPONSE))
        change(payload)
        return payload

    def test_fractional_score_is_rounded(self):
        payload = self.with_changes(lambda p: p["codeHealth"].update(score=82.5))
        assert normalize_result(payload).code_health.score == 82

    def test_string_score_is_accepted(self):
        payload = self.with_changes(lambda p: p["codeHealth"].update(score="91"))
        assert normalize_result(payload).code_health.score == 91

    def test_score_clamped_to_range(self):
        payload = self.with_changes(lambda p: p["codeHealth"].update(score=140))
        assert normalize_result(payload).code_health.score == 100

    def test_null_file_becomes_general(self):
        payload = self.with_changes(lambda p: p["issues"][0].update(file=None))

        result = normalize_result(payload)

        assert result.issues[0].file == "general"
        assert result.issues[0].message == "Core module has no tests"

    def test_severity_and_priority_are_lowercased(self):
        def change(p):
            p["issues"][0]["severity"] = "High"
            p["recommendations"][0]["priority"] = " MEDIUM "

        result = normalize_result(self.with_changes(change))

        assert result.issues[0].severity == "high"
        assert result.recommendations[0].priority == "medium"

    def test_incomplete_recommendation_dropped(self):
        payload = self.with_changes(lambda p: p["recommendations"].append({"title": "No body"}))
        assert len(normalize_result(payload).recommendations) == 1

    def test_fractional_metric_counts_are_rounded(self):
        payload = self.with_changes(lambda p: p["metrics"].update(linesOfCode=42000.4, dependencies="25"))

        metrics = normalize_result(payload).metrics

        assert metrics.lines_of_code == 42000
        assert metrics.dependencies == 25

    def test_unusable_metrics_raise(self):
        payload = self.with_changes(lambda p: p.update(metrics={"linesOfCode": "lots"}))
        with pytest.raises(ValidationFailure):
            normalize_result(payload)

    def test_issues_not_a_list_raise(self):
        payload = self.with_changes(lambda p: p.update(issues="none"))
        with pytest.raises(ValidationFailure):
            normalize_result(payload)
