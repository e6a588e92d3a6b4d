"""Text-generation client used for questionnaire analysis."""

import logging

import openai
from openai import AsyncOpenAI

from tradermind.config import Settings
from tradermind.errors.exceptions import AnalysisTimeoutError

logger = logging.getLogger(__name__)


class AnalysisServiceError(Exception):
    """Transient failure from the text-generation service (retryable)."""


class AnalysisClient:
    """Thin wrapper around ``AsyncOpenAI`` chat completions.

    Built once at startup and closed at shutdown. Retries are left to the
    caller's ``RetryPolicy``, so the SDK's own retry loop is disabled.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2500,
        request_timeout: float = 120.0,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=request_timeout,
            max_retries=0,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnalysisClient":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            temperature=settings.analysis_temperature,
            max_tokens=settings.analysis_max_tokens,
            request_timeout=settings.analysis_timeout_seconds,
        )

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Return the generated text for one system/user prompt pair."""
        try:
            completion = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.APITimeoutError as exc:
            raise AnalysisTimeoutError(str(exc)) from exc
        except openai.APIError as exc:
            raise AnalysisServiceError(f"{type(exc).__name__}: {exc}") from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            raise AnalysisServiceError("empty completion")
        return content

    async def close(self) -> None:
        await self._client.close()
