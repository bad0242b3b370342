"""
review_pipeline.py
==================
The brain of the application.
Turns a code snippet into validated review findings in strictly ordered phases:

1. INTAKE         → reject empty code before any remote call
2. LANGUAGE       → detection model, only when the language is "auto"/"unknown"/empty
3. FRAMEWORKS     → detection model lists the libraries the code uses
4. DOCUMENTATION  → Context7 docs for every framework, fetched concurrently
5. PROMPT         → filename, language, verbatim code, docs, criteria, output format
6. REVIEW         → review model
7. PARSING        → schema-validated findings

Phases 2-4 are optional: a failure there degrades the result and the review
goes on. Phases 6-7 are not: their failures surface as AnalysisFailedError.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

from loguru import logger

from docreview.core.errors import (
    AnalysisFailedError,
    FindingsParseError,
    InvalidSubmissionError,
    ModelInvocationError,
)
from docreview.models.schemas import (
    DEFAULT_FILENAME,
    UNKNOWN_LANGUAGE,
    CodeSubmission,
    Finding,
    PhaseOutcome,
    ReviewReport,
)
from docreview.services.context7_client import Context7Client
from docreview.services.llm_service import ModelInvoker, detection_profile, review_profile
from docreview.services.output_parser import FindingsParser
from docreview.services.prompts import (
    DOCUMENTATION_SEPARATOR,
    FRAMEWORK_DETECTION_PROMPT,
    FRAMEWORKS_NONE_REPLY,
    LANGUAGE_DETECTION_PROMPT,
    NO_DOCUMENTATION_PLACEHOLDER,
    REVIEW_CRITERIA,
    REVIEW_PROMPT,
)


class ReviewPipeline:
    """
    Orchestrates one code review.
    Holds only its collaborators; every run's state is local to the call.
    """

    def __init__(
        self,
        detection_model: Optional[ModelInvoker] = None,
        review_model: Optional[ModelInvoker] = None,
        docs_client: Optional[Context7Client] = None,
        parser: Optional[FindingsParser] = None,
    ):
        self.detection_model = detection_model or ModelInvoker(detection_profile())
        self.review_model = review_model or ModelInvoker(review_profile())
        self.docs_client = docs_client or Context7Client()
        self.parser = parser or FindingsParser()

    @property
    def is_ready(self) -> bool:
        return self.review_model.is_configured

    # ─────────────────────────────────────────────
    # PHASE 1: INTAKE
    # ─────────────────────────────────────────────

    def validate(self, submission: CodeSubmission) -> None:
        """Reject a submission with no code. Nothing remote happens before this."""
        if not submission.code or not submission.code.strip():
            raise InvalidSubmissionError("Code is required")

    # ─────────────────────────────────────────────
    # PHASE 2: LANGUAGE
    # ─────────────────────────────────────────────

    async def resolve_language(self, submission: CodeSubmission) -> PhaseOutcome[str]:
        if not submission.needs_language_detection:
            return PhaseOutcome.ok(submission.language)

        try:
            reply = await self.detection_model.invoke(
                LANGUAGE_DETECTION_PROMPT, {"code": submission.code}
            )
        except ModelInvocationError as e:
            logger.warning(f"Language detection failed, using '{UNKNOWN_LANGUAGE}': {e}")
            return PhaseOutcome.fallback(UNKNOWN_LANGUAGE, str(e))

        language = reply.strip()
        if not language:
            return PhaseOutcome.fallback(UNKNOWN_LANGUAGE, "empty language detection reply")
        logger.info(f"Detected language: {language}")
        return PhaseOutcome.ok(language)

    # ─────────────────────────────────────────────
    # PHASE 3: FRAMEWORKS
    # ─────────────────────────────────────────────

    @staticmethod
    def parse_framework_list(reply: str) -> List[str]:
        """'react, next.js ' -> ['react', 'next.js']; 'None' -> []."""
        content = reply.strip()
        if content.lower() == FRAMEWORKS_NONE_REPLY:
            return []
        return [name.strip() for name in content.split(",") if name.strip()]

    async def detect_frameworks(self, code: str, language: str) -> PhaseOutcome[List[str]]:
        try:
            reply = await self.detection_model.invoke(
                FRAMEWORK_DETECTION_PROMPT, {"language": language, "code": code}
            )
        except ModelInvocationError as e:
            logger.warning(f"Framework detection failed, skipping documentation: {e}")
            return PhaseOutcome.fallback([], str(e))

        frameworks = self.parse_framework_list(reply)
        logger.info(f"Detected frameworks: {frameworks or 'none'}")
        return PhaseOutcome.ok(frameworks)

    # ─────────────────────────────────────────────
    # PHASE 4: DOCUMENTATION
    # ─────────────────────────────────────────────

    async def aggregate_documentation(self, frameworks: List[str]) -> PhaseOutcome[str]:
        """
        Look up every framework concurrently and join the docs in list order.
        A failed lookup contributes nothing; the others are unaffected.
        """
        if not frameworks:
            return PhaseOutcome.ok("")

        results = await asyncio.gather(
            *(self.docs_client.lookup(name) for name in frameworks),
            return_exceptions=True,
        )

        texts: List[str] = []
        failures: List[str] = []
        for name, result in zip(frameworks, results):
            if isinstance(result, BaseException):
                logger.error(f"Documentation lookup for '{name}' raised: {result}")
                failures.append(f"{name}: {result}")
                continue
            if result.degraded:
                failures.append(f"{name}: {result.error}")
            if result.value:
                texts.append(result.value)

        bundle = DOCUMENTATION_SEPARATOR.join(texts)
        logger.info(f"Documentation: {len(texts)}/{len(frameworks)} frameworks, {len(bundle)} chars")

        if failures:
            return PhaseOutcome.fallback(bundle, "; ".join(failures))
        return PhaseOutcome.ok(bundle)

    # ─────────────────────────────────────────────
    # PHASE 5: PROMPT
    # ─────────────────────────────────────────────

    def build_review_variables(
        self, submission: CodeSubmission, language: str, documentation: str
    ) -> Dict[str, Any]:
        return {
            "filename": submission.filename or DEFAULT_FILENAME,
            "language": language,
            "code": submission.code,
            "library_docs": documentation or NO_DOCUMENTATION_PLACEHOLDER,
            "review_criteria": REVIEW_CRITERIA,
            "format_instructions": self.parser.get_format_instructions(),
        }

    # ─────────────────────────────────────────────
    # FULL RUN
    # ─────────────────────────────────────────────

    async def review(self, submission: CodeSubmission) -> ReviewReport:
        """Main entry point: takes a submission and returns its findings plus run metadata."""
        start_time = time.time()

        # 1. Intake
        self.validate(submission)

        logger.info(
            f"Starting analysis for {submission.filename} in {submission.language} "
            f"({len(submission.code)} chars)"
        )
        degraded: List[str] = []

        # 2. Language
        language = await self.resolve_language(submission)
        if language.degraded:
            degraded.append("language")

        # 3. Frameworks
        frameworks = await self.detect_frameworks(submission.code, language.value)
        if frameworks.degraded:
            degraded.append("frameworks")

        # 4. Documentation
        documentation = await self.aggregate_documentation(frameworks.value)
        if documentation.degraded:
            degraded.append("documentation")

        # 5. Prompt
        variables = self.build_review_variables(submission, language.value, documentation.value)

        # 6. Review
        try:
            raw = await self.review_model.invoke(REVIEW_PROMPT, variables)
        except ModelInvocationError as e:
            logger.error(f"Error analyzing code: {e}")
            raise AnalysisFailedError(f"Failed to analyze code: {e}") from e

        # 7. Parsing
        try:
            findings = self.parser.parse(raw)
        except FindingsParseError as e:
            logger.error(f"Error parsing review output: {e} | excerpt: {e.raw_excerpt[:200]!r}")
            raise AnalysisFailedError(f"Failed to analyze code: {e}") from e

        review_time = int((time.time() - start_time) * 1000)
        logger.info(f"Review complete | findings={len(findings)} | time={review_time}ms")

        return ReviewReport(
            findings=findings,
            language_detected=language.value,
            frameworks=frameworks.value,
            documentation_found=bool(documentation.value),
            degraded_phases=degraded,
            review_time_ms=review_time,
            model_used=self.review_model.profile.model,
        )

    async def analyze_code(
        self, code: str, language: Optional[str] = None, filename: Optional[str] = None
    ) -> List[Finding]:
        submission = CodeSubmission(
            code=code or "",
            language=language,
            filename=filename or DEFAULT_FILENAME,
        )
        report = await self.review(submission)
        return report.findings


# Singleton instance — built on first request
_pipeline: Optional[ReviewPipeline] = None

def get_review_pipeline() -> ReviewPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = ReviewPipeline()
    return _pipeline
