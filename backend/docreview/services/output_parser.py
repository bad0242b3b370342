"""
output_parser.py
================
Turns the review model's raw text into validated Finding objects.

The parser is the contract boundary: either every finding matches the
schema, or the whole output is rejected with FindingsParseError.
"""

import json
import re
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

from docreview.core.errors import FindingsParseError
from docreview.models.schemas import Finding, FindingList

EXCERPT_LENGTH = 500

_JSON_FENCE = re.compile(r"```json\s*\n(.*)\n?```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[a-zA-Z]*\s*\n(.*)\n?```", re.DOTALL)
_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class FindingsParser:
    """Validates model output against the FindingList schema."""

    def get_format_instructions(self) -> str:
        schema = json.dumps(FindingList.model_json_schema(), indent=2)
        return (
            "The output must be a JSON object that conforms to the JSON schema below.\n"
            "Return ONLY the JSON object, wrapped in a ```json code block, with no other text.\n"
            "Every finding must include all six fields; use an empty string when there is "
            "nothing to say for suggestion or explanation.\n\n"
            f"```json\n{schema}\n```"
        )

    def extract_json(self, text: str) -> Optional[str]:
        """Find the JSON payload in a model reply (fenced block, bare object, or the whole text)."""
        for pattern in (_JSON_FENCE, _ANY_FENCE, _OBJECT):
            match = pattern.search(text)
            if match:
                candidate = match.group(1) if pattern.groups else match.group(0)
                if candidate.strip():
                    return candidate.strip()
        stripped = text.strip()
        return stripped or None

    def parse(self, text: str) -> List[Finding]:
        raw = text or ""
        excerpt = raw[:EXCERPT_LENGTH]

        payload = self.extract_json(raw)
        if payload is None:
            raise FindingsParseError("Model returned an empty response", raw_excerpt=excerpt)

        try:
            data = json.loads(payload)
        except (ValueError, RecursionError) as e:
            logger.debug(f"Unparseable model output: {excerpt}")
            raise FindingsParseError(
                f"Model output is not valid JSON: {e}", raw_excerpt=excerpt
            ) from e

        try:
            parsed = FindingList.model_validate(data)
        except ValidationError as e:
            errors = e.errors(include_url=False)
            logger.debug(f"Schema violations in model output: {errors}")
            raise FindingsParseError(
                f"Model output does not match the findings schema ({e.error_count()} error(s))",
                raw_excerpt=excerpt,
                errors=errors,
            ) from e

        return parsed.findings
