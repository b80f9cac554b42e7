"""
Repo Health API Schema Definitions

Pydantic models defining the API contract. Fields are snake_case in Python
and camelCase on the wire.
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# =============================================================================
# ENUMS
# =============================================================================

class AnalysisStatus(str, Enum):
    """Lifecycle of an analysis row. COMPLETED and FAILED are terminal."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)


Severity = Literal["low", "medium", "high", "critical"]
Priority = Literal["low", "medium", "high"]


# =============================================================================
# ANALYSIS RESULT
# =============================================================================

class CodeHealth(CamelModel):
    score: int = Field(..., ge=0, le=100, description="Overall code health score")
    summary: str = Field("", description="Short explanation of the score")
    coverage: float | None = Field(None, description="Estimated test coverage, if the model offered one")
    complexity: float | None = Field(None, description="Estimated overall complexity, if the model offered one")


class Issue(CamelModel):
    """A potential problem or area needing attention"""
    type: str
    severity: Severity
    file: str = "general"
    line: int | None = None
    message: str
    suggestion: str | None = None


class Recommendation(CamelModel):
    """An actionable improvement for the team"""
    category: str
    priority: Priority
    title: str
    description: str
    impact: str


class Metrics(CamelModel):
    """Estimated (not measured) repository metrics"""
    lines_of_code: int = Field(..., ge=0)
    files_count: int = Field(..., ge=0)
    avg_complexity: float = Field(..., ge=0)
    dependencies: int = Field(..., ge=0)
    test_coverage: float | None = None
    vulnerabilities: int | None = None


class AnalysisResult(CamelModel):
    """Structured output of the AI normalizer"""
    code_health: CodeHealth
    issues: list[Issue] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    metrics: Metrics


# =============================================================================
# REQUEST / RESPONSE MODELS
# =============================================================================

class AnalyzeRequest(CamelModel):
    """Request body for POST /api/analyze"""
    repo_url: str | None = Field(None, description="GitHub URL to analyze (e.g., https://github.com/owner/repo)")


class AnalyzeResponse(CamelModel):
    analysis_id: int
    repository_id: int
    status: AnalysisStatus


class RepositoryOut(CamelModel):
    id: int
    owner: str
    name: str
    url: str
    description: str | None = None
    created_at: datetime


class AnalysisOut(CamelModel):
    """Full analysis record returned by GET /api/analyze"""
    id: int
    repository_id: int
    status: AnalysisStatus
    # Loose dicts: rows still processing carry empty payloads
    code_health: dict
    issues: list
    recommendations: list
    metrics: dict
    duration: int | None = None
    analyzed_at: datetime
    repository: RepositoryOut


class HealthResponse(CamelModel):
    status: str
    version: str
    ai_provider: str | None = None
