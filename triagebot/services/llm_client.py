"""
Model service client.

Submits a single prompt and returns the generated text. Failures of any
kind surface as ``UpstreamError``.
"""

import time

import openai
from openai import AsyncOpenAI

from triagebot.errors import UpstreamError
from triagebot.utils.logging import get_logger, log_api_call

logger = get_logger(__name__)


class LLMClient:
    """Wrapper for the OpenAI chat completions API."""

    def __init__(self, client: AsyncOpenAI, model: str):
        self.client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings) -> "LLMClient":
        client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.http_timeout_seconds,
        )
        logger.info(f"Initialized OpenAI client for model {settings.openai_model}")
        return cls(client, settings.openai_model)

    async def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        """
        Generate text for a prompt.
        
        Args:
            prompt: Instruction text
            max_tokens: Upper bound on generated tokens
            temperature: Sampling temperature
            
        Returns:
            Raw generated text (may be empty)
            
        Raises:
            UpstreamError: If the model service call fails
        """
        start_time = time.time()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.OpenAIError as e:
            log_api_call(logger, "openai", "chat.completions", "POST",
                         duration_ms=(time.time() - start_time) * 1000, error=str(e))
            raise UpstreamError(f"Model service call failed: {e}",
                                status_code=getattr(e, "status_code", None)) from e

        log_api_call(logger, "openai", "chat.completions", "POST",
                     status_code=200, duration_ms=(time.time() - start_time) * 1000)

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def aclose(self) -> None:
        await self.client.close()
