"""Gemini Provider implementation for the Exam Coach System."""

import asyncio
import json
from typing import Any, Dict, List, Optional

import aiohttp
import requests

from ..services.configuration_manager import LLMProviderConfig
from ..services.llm_manager import LLMProvider
from ..utils.exceptions import (
    AuthenticationError,
    LLMProviderError,
    MalformedResponseError,
    RateLimitError,
    TimeoutError,
)
from ..utils.logging import get_logger

USER_AGENT = "ExamCoach/0.1.0"
GENERATE_CONTENT = "generateContent"
LIST_MODELS_TIMEOUT = 15


def build_generate_payload(prompt: str, json_output: bool = False, temperature: Optional[float] = None) -> Dict[str, Any]:
    """Build a ``generateContent`` request body for a single user prompt."""
    payload: Dict[str, Any] = {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
    }
    generation_config: Dict[str, Any] = {}
    if json_output:
        generation_config["responseMimeType"] = "application/json"
    if temperature is not None:
        generation_config["temperature"] = temperature
    if generation_config:
        payload["generationConfig"] = generation_config
    return payload


def extract_response_text(body: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate.

    Raises:
        MalformedResponseError: If the body has no candidate text.
    """
    candidates = body.get("candidates") or []
    if not candidates:
        block_reason = (body.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise MalformedResponseError(f"Model returned no answer (blocked: {block_reason})")
        raise MalformedResponseError("Model returned no candidates")

    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    if not text:
        finish_reason = candidates[0].get("finishReason", "unknown")
        raise MalformedResponseError(f"Model returned an empty answer (finish reason: {finish_reason})")
    return text


def filter_generate_content_models(models: List[Dict[str, Any]]) -> List[str]:
    """Keep models that support ``generateContent``, without the ``models/`` prefix."""
    names = []
    for model in models:
        if GENERATE_CONTENT in (model.get("supportedGenerationMethods") or []):
            name = model.get("name", "")
            names.append(name[len("models/"):] if name.startswith("models/") else name)
    return names


def _error_message(body: Any) -> Optional[str]:
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message")
    return None


class GeminiProvider(LLMProvider):
    """Google Gemini REST API provider."""

    def __init__(self, config: LLMProviderConfig):
        super().__init__(config)
        self.api_key = config.api_key
        self.base_url = config.base_url.rstrip("/")
        self.temperature = config.temperature
        self.logger = get_logger("gemini_provider")
        self._session: Optional[requests.Session] = None

    def initialize(self) -> None:
        """Initialize the Gemini provider."""
        if not self.api_key:
            raise AuthenticationError("Gemini API key is required", provider_name=self.provider_name)

        self._session = requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})
        self.logger.info(f"Gemini provider initialized with models: {self.config.models}")

    async def cleanup(self) -> None:
        """Clean up resources."""
        if self._session:
            self._session.close()
            self._session = None

    async def generate_text(self, prompt: str, model: str, timeout: int, json_output: bool = False) -> str:
        """Call ``models/{model}:generateContent`` and return the reply text."""
        url = f"{self.base_url}/models/{model}:{GENERATE_CONTENT}"
        payload = build_generate_payload(prompt, json_output=json_output, temperature=self.temperature)

        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=timeout),
                headers={"User-Agent": USER_AGENT},
            ) as session:
                async with session.post(url, params={"key": self.api_key}, json=payload) as response:
                    raw = await response.text()
                    status = response.status
        except asyncio.TimeoutError:
            raise TimeoutError(
                f"Gemini did not answer within {timeout}s",
                operation=f"{model}:{GENERATE_CONTENT}",
                timeout_seconds=timeout,
            )
        except aiohttp.ClientError as e:
            raise LLMProviderError(f"Network error: {e}", provider_name=self.provider_name)

        body = self._decode_body(raw)
        self._raise_for_status(status, body)
        if not isinstance(body, dict):
            raise MalformedResponseError("Gemini returned a non-JSON body", raw_content=raw[:500])
        return extract_response_text(body)

    def list_models(self) -> List[str]:
        """List models supporting ``generateContent``."""
        if self._session is not None:
            return self._fetch_models(self._session)
        with requests.Session() as session:
            return self._fetch_models(session)

    def _fetch_models(self, session: requests.Session) -> List[str]:
        models: List[Dict[str, Any]] = []
        params: Dict[str, Any] = {"key": self.api_key, "pageSize": 1000}

        while True:
            try:
                response = session.get(f"{self.base_url}/models", params=params, timeout=LIST_MODELS_TIMEOUT)
                body = response.json()
            except (requests.RequestException, ValueError) as e:
                raise LLMProviderError(f"Network Error: {e}", provider_name=self.provider_name)

            message = _error_message(body)
            if message:
                raise LLMProviderError(f"API Error: {message}", provider_name=self.provider_name,
                                       status_code=response.status_code)
            if not isinstance(body, dict):
                raise LLMProviderError(f"API Error: unexpected model list ({type(body).__name__})",
                                       provider_name=self.provider_name, status_code=response.status_code)

            models.extend(body.get("models") or [])
            next_page = body.get("nextPageToken")
            if not next_page:
                break
            params["pageToken"] = next_page

        return filter_generate_content_models(models)

    def _decode_body(self, raw: str) -> Any:
        try:
            return json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            self.logger.debug(f"Non-JSON body from Gemini: {raw[:200]}")
            return None

    def _raise_for_status(self, status: int, body: Any) -> None:
        """Map HTTP failures onto the provider exception hierarchy."""
        if 200 <= status < 300:
            return

        message = _error_message(body) or f"Gemini API returned status {status}"
        if status in (401, 403):
            raise AuthenticationError(message, provider_name=self.provider_name)
        if status == 429:
            raise RateLimitError(message, provider_name=self.provider_name)
        raise LLMProviderError(message, provider_name=self.provider_name, status_code=status)
