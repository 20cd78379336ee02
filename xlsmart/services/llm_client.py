"""Client for the LiteLLM proxy's OpenAI-compatible chat completions endpoint."""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from xlsmart.config import Settings
from xlsmart.exceptions import ConfigurationError, LLMError, LLMResponseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LLMConfig:
    base_url: str
    api_key: str
    model: str = "gpt-4o-mini"
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMConfig":
        """Build the config, failing fast if the proxy cannot be reached."""
        if not settings.litellm_api_key:
            raise ConfigurationError("LITELLM_API_KEY not configured in environment variables")
        if not settings.litellm_base_url:
            raise ConfigurationError("LITELLM_BASE_URL not configured in environment variables")
        return cls(
            base_url=settings.litellm_base_url,
            api_key=settings.litellm_api_key,
            model=settings.llm_model,
            timeout_seconds=settings.llm_timeout_seconds,
        )

    @property
    def completions_url(self) -> str:
        base = self.base_url.rstrip("/")
        if base.endswith("/chat/completions"):
            return base
        return f"{base}/chat/completions"


class LLMClient:
    """
    Sends one chat completion per call.

    No retries and no caching: callers decide what a failure means for their
    record.
    """

    def __init__(self, config: LLMConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    async def chat(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """
        Return the text content of the first choice.

        Raises:
            LLMError: the request failed or the endpoint returned an error status
            LLMResponseError: the body did not contain a message content
        """
        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    self.config.completions_url, headers=headers, json=payload
                )
        except httpx.HTTPError as e:
            logger.error(f"LLM request to {self.config.completions_url} failed: {e}")
            raise LLMError(f"LLM request failed: {e}") from e

        if response.is_error:
            logger.error(f"LLM proxy error {response.status_code}: {response.text[:500]}")
            raise LLMError(f"LLM proxy error ({response.status_code}): {response.text[:200]}")

        try:
            data = response.json()
        except ValueError as e:
            raise LLMResponseError("LLM response is not valid JSON") from e

        return extract_message_content(data)

    async def chat_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> Dict[str, Any]:
        """Like ``chat`` but parse the reply as a JSON object."""
        content = await self.chat(
            system_prompt, user_prompt, temperature=temperature, max_tokens=max_tokens
        )
        return extract_json_object(content)


def extract_message_content(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise LLMResponseError("LLM response missing choices[0].message.content") from e
    if not isinstance(content, str):
        raise LLMResponseError("LLM message content is not text")
    return content.strip()


def strip_code_fences(text: str) -> str:
    text = (text or "").strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def extract_json_object(text: str) -> Dict[str, Any]:
    """Parse a JSON object out of model output, tolerating markdown fences and chatter."""
    cleaned = strip_code_fences(text)
    if not cleaned:
        raise LLMResponseError("Empty model output")

    try:
        obj = json.loads(cleaned)
        if isinstance(obj, dict):
            return obj
    except ValueError:
        pass

    # Fall back to the outermost {...} block
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        raise LLMResponseError("No JSON object found in model output")
    try:
        obj = json.loads(cleaned[start:end + 1])
    except ValueError as e:
        raise LLMResponseError(f"Model output is not valid JSON: {e}") from e
    if not isinstance(obj, dict):
        raise LLMResponseError("Model output JSON is not an object")
    return obj
