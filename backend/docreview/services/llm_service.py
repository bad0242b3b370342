"""
llm_service.py
==============
Model invocation: render a prompt template, send it to the model, get text back.

One invoker class, several named profiles:

1. DETECTION → fast, cheap, low temperature (language + framework classification)
2. REVIEW    → higher capability, bounded output length (the full code review)

Any failure is raised as ModelInvocationError; the caller decides whether
that failure is tolerable.
"""

import string
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from loguru import logger

from docreview.core.config import Settings, settings
from docreview.core.errors import ModelInvocationError, PromptRenderError


# ─────────────────────────────────────────────────────────────────────────────
# PROMPT TEMPLATES
# ─────────────────────────────────────────────────────────────────────────────

class PromptTemplate:
    """A prompt with `{name}` placeholders.

    Values are substituted as-is, so code containing braces is safe to pass
    as a variable. Literal braces in the template itself are written `{{ }}`.
    """

    def __init__(self, template: str):
        self.template = template
        self.input_variables: List[str] = sorted({
            field for _, field, _, _ in string.Formatter().parse(template) if field
        })

    def format(self, **variables: Any) -> str:
        missing = [name for name in self.input_variables if name not in variables]
        if missing:
            raise PromptRenderError(
                f"Prompt is missing variables: {', '.join(missing)}",
                context={"missing": missing},
            )
        return self.template.format(**variables)


# ─────────────────────────────────────────────────────────────────────────────
# MODEL PROFILES
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ModelProfile:
    """One named model configuration."""

    name: str
    model: str
    temperature: float
    max_tokens: Optional[int] = None


def detection_profile(config: Settings = settings) -> ModelProfile:
    return ModelProfile(
        name="detection",
        model=config.DETECTION_MODEL,
        temperature=config.DETECTION_TEMPERATURE,
    )


def review_profile(config: Settings = settings) -> ModelProfile:
    return ModelProfile(
        name="review",
        model=config.REVIEW_MODEL,
        temperature=config.REVIEW_TEMPERATURE,
        max_tokens=config.REVIEW_MAX_TOKENS,
    )


# ─────────────────────────────────────────────────────────────────────────────
# INVOKER
# ─────────────────────────────────────────────────────────────────────────────

class ModelInvoker:
    """Sends rendered prompts to an OpenAI-compatible chat completion API."""

    def __init__(self, profile: ModelProfile, client: Any = None, config: Settings = settings):
        self.profile = profile
        self._client = client
        self._config = config

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self._config.OPENAI_API_KEY)

    def _get_client(self):
        if self._client is None:
            if not self._config.OPENAI_API_KEY:
                raise ModelInvocationError(
                    f"[{self.profile.name}] OPENAI_API_KEY is not configured"
                )
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(
                api_key=self._config.OPENAI_API_KEY,
                base_url=self._config.OPENAI_BASE_URL,
                timeout=self._config.MODEL_TIMEOUT,
                max_retries=0,
            )
            logger.info(f"✅ OpenAI client ready for {self.profile.name} profile ({self.profile.model})")
        return self._client

    async def invoke(self, template: PromptTemplate, variables: Mapping[str, Any]) -> str:
        """Render `template` with `variables` and return the model's raw text reply."""
        prompt = template.format(**variables)
        client = self._get_client()

        request: Dict[str, Any] = {
            "model": self.profile.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.profile.temperature,
        }
        if self.profile.max_tokens:
            request["max_tokens"] = self.profile.max_tokens

        logger.debug(f"Invoking {self.profile.name} model {self.profile.model} ({len(prompt)} chars)")

        try:
            response = await client.chat.completions.create(**request)
        except Exception as e:
            logger.error(f"{self.profile.name} model call failed: {e}")
            raise ModelInvocationError(
                f"[{self.profile.name}] model call failed: {e}",
                context={"model": self.profile.model},
            ) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
