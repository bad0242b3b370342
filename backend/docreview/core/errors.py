"""
errors.py
=========
Typed exception hierarchy for the review backend.

CodeReviewError (base)
├── InvalidSubmissionError   – bad/empty input, rejected before any remote call
├── AnalysisFailedError      – review invocation or output parsing failed
├── ModelInvocationError     – a model call failed (network, provider, timeout)
│   └── PromptRenderError    – a prompt template was missing a variable
└── FindingsParseError       – model output did not match the findings schema

Only InvalidSubmissionError and AnalysisFailedError leave the review pipeline.
The others are raised by its collaborators and either absorbed as a degraded
phase or wrapped into AnalysisFailedError.
"""

from typing import Any, Dict, Optional


class CodeReviewError(Exception):
    """Base exception for the review backend."""

    status_code = 500

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class InvalidSubmissionError(CodeReviewError):
    """The submitted code was empty or otherwise unusable."""

    status_code = 400


class AnalysisFailedError(CodeReviewError):
    """The review model call or its output parsing failed."""

    status_code = 500


class ModelInvocationError(CodeReviewError):
    """A single model call failed."""


class PromptRenderError(ModelInvocationError):
    """A prompt template could not be rendered with the given variables."""


class FindingsParseError(CodeReviewError):
    """Model output could not be validated against the findings schema."""

    def __init__(self, message: str, raw_excerpt: str = "", errors: Optional[list] = None):
        super().__init__(message, context={"raw_excerpt": raw_excerpt, "errors": errors or []})
        self.raw_excerpt = raw_excerpt
        self.errors = errors or []
