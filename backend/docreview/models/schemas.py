"""
schemas.py
==========
Pydantic models for the review pipeline and the HTTP API.
Finding/FindingList are also the schema the review model must answer with.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

DEFAULT_FILENAME = "code-snippet"
UNKNOWN_LANGUAGE = "Unknown"

# Declared languages that mean "detect it for me"
LANGUAGE_SENTINELS = {"", "auto", "unknown"}


class Severity(str, Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"
    SUGGESTION = "suggestion"


class Category(str, Enum):
    BUG = "bug"
    SECURITY = "security"
    PERFORMANCE = "performance"
    STYLE = "style"
    BEST_PRACTICE = "best-practice"


# ─── Pipeline Models ───────────────────────────────────────────────────────────

class CodeSubmission(BaseModel):
    """One review request. Immutable for the lifetime of the pipeline run."""

    model_config = ConfigDict(frozen=True)

    code: str
    language: Optional[str] = "auto"
    filename: str = DEFAULT_FILENAME

    @property
    def needs_language_detection(self) -> bool:
        if self.language is None:
            return True
        return self.language.strip().lower() in LANGUAGE_SENTINELS


class Finding(BaseModel):
    """A single review issue reported by the model."""

    model_config = ConfigDict(extra="ignore")

    severity: Severity = Field(..., description="critical | major | minor | suggestion")
    category: Category = Field(
        ..., description="bug | security | performance | style | best-practice"
    )
    line: int = Field(..., ge=1, strict=True, description="Line number in the submitted code (1-based)")
    message: str = Field(..., description="Concise description of the issue (1 sentence)")
    suggestion: str = Field(..., description="Specific code fix or improvement")
    explanation: str = Field(..., description="Detailed reasoning (2-3 sentences)")


class FindingList(BaseModel):
    """Top-level object the review model must return."""

    findings: List[Finding] = Field(..., description="Issues found, in order; empty when the code has none")


@dataclass(frozen=True)
class PhaseOutcome(Generic[T]):
    """Result of an optional pipeline phase.

    `degraded` is set when the phase failed and `value` is the fallback
    substituted for the real result.
    """

    value: T
    degraded: bool = False
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "PhaseOutcome[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, error: str) -> "PhaseOutcome[T]":
        return cls(value=value, degraded=True, error=error)


class ReviewReport(BaseModel):
    """Everything a pipeline run produced, findings plus run metadata."""

    model_config = ConfigDict(protected_namespaces=())

    findings: List[Finding] = Field(default_factory=list)
    language_detected: str
    frameworks: List[str] = Field(default_factory=list)
    documentation_found: bool = False
    degraded_phases: List[str] = Field(default_factory=list)
    review_time_ms: int = 0
    model_used: str


# ─── Request Models ────────────────────────────────────────────────────────────

class ReviewRequest(BaseModel):
    """What the web client sends to the API."""

    # Emptiness is checked by the pipeline so it answers 400, not 422.
    code: Optional[str] = Field(default="", description="The source code to review")
    language: Optional[str] = Field(
        default="auto",
        description="Programming language of the code, or 'auto' to detect it"
    )
    filename: Optional[str] = Field(
        default=None,
        description="Optional filename for context (e.g., 'app.py')"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "const result = eval(userInput);",
                "language": "javascript",
                "filename": "handler.js"
            }
        }
    )

    def to_submission(self) -> CodeSubmission:
        return CodeSubmission(
            code=self.code or "",
            language=self.language,
            filename=self.filename or DEFAULT_FILENAME,
        )


# ─── Response Models ───────────────────────────────────────────────────────────

class ReviewResponse(BaseModel):
    """Successful review sent back to the web client."""

    model_config = ConfigDict(protected_namespaces=())

    success: bool = True
    findings: List[Finding] = Field(default_factory=list)

    # Documentation enrichment is always attempted
    used_documentation: bool = True

    # Metadata
    language_detected: str
    frameworks: List[str] = Field(default_factory=list)
    documentation_found: bool = False
    degraded_phases: List[str] = Field(default_factory=list)
    review_time_ms: int = Field(..., description="Time taken for review in milliseconds")
    model_used: str = Field(..., description="Which model performed the review")

    @classmethod
    def from_report(cls, report: ReviewReport) -> "ReviewResponse":
        return cls(
            findings=report.findings,
            language_detected=report.language_detected,
            frameworks=report.frameworks,
            documentation_found=report.documentation_found,
            degraded_phases=report.degraded_phases,
            review_time_ms=report.review_time_ms,
            model_used=report.model_used,
        )


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


class HealthResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    status: str
    model_configured: bool
    detection_model: str
    review_model: str
    docs_authenticated: bool
    version: str
