"""Text generation clients used by the summarization engine."""
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from clientpulse.config import Settings, get_settings
from clientpulse.services.generation_exceptions import (
    GenerationAPIError,
    GenerationPayloadTooLargeError,
    GenerationRateLimitError,
    GenerationTimeoutError,
)

logger = logging.getLogger(__name__)

DEFAULT_EXPONENTIAL_MULTIPLIER = 2
TOO_LARGE_HINTS = ("too large", "entity too large", "payload too large", "request size")


class BaseGenerationClient:
    """
    Shared HTTP plumbing: status-code mapping and rate-limit backoff.

    Subclasses build the provider request and read the answer out of the
    provider response. ``generate(instruction, context)`` is the only method
    the engine relies on.
    """

    provider = "base"

    def __init__(
        self,
        timeout: int = 60,
        max_retries: int = 3,
        initial_wait: int = 1,
        max_wait: int = 30,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            timeout: Seconds allowed per request
            max_retries: Maximum attempts when the provider rate-limits us
            initial_wait: Initial wait time in seconds before first retry
            max_wait: Maximum wait time in seconds between retries
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.initial_wait = initial_wait
        self.max_wait = max_wait
        self.transport = transport

    def _build_request(self, instruction: str, context: str) -> Dict[str, Any]:
        raise NotImplementedError

    def _parse_answer(self, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    def _post(self, instruction: str, context: str) -> str:
        """
        Single round-trip.

        Raises:
            GenerationPayloadTooLargeError: When the request body is rejected for size
            GenerationRateLimitError: When the provider returns 429
            GenerationAPIError: For other 4xx/5xx responses or unreadable bodies
            GenerationTimeoutError: When the request times out
        """
        request = self._build_request(instruction, context)
        payload_chars = len(instruction) + len(context)

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    request["url"],
                    params=request.get("params"),
                    headers=request.get("headers"),
                    json=request["json"],
                )

                if response.status_code == 413:
                    raise GenerationPayloadTooLargeError(
                        f"{self.provider} rejected a {payload_chars}-char payload as too large",
                        payload_chars=payload_chars,
                    )

                if response.status_code == 429:
                    retry_after = response.headers.get("Retry-After")
                    retry_seconds = int(retry_after) if retry_after and retry_after.isdigit() else None
                    raise GenerationRateLimitError(
                        f"{self.provider} rate limit exceeded.",
                        retry_after=retry_seconds,
                    )

                if response.status_code >= 400:
                    response_text = response.text[:500]
                    if any(hint in response_text.lower() for hint in TOO_LARGE_HINTS):
                        raise GenerationPayloadTooLargeError(
                            f"{self.provider} reported the payload as too large",
                            payload_chars=payload_chars,
                        )
                    raise GenerationAPIError(
                        f"{self.provider} API error: {response.status_code}",
                        status_code=response.status_code,
                        response_body=response_text,
                    )

                data = response.json()

        except httpx.TimeoutException as timeout_exc:
            raise GenerationTimeoutError(
                f"{self.provider} request timed out after {self.timeout}s"
            ) from timeout_exc

        except (
            GenerationPayloadTooLargeError,
            GenerationRateLimitError,
            GenerationAPIError,
        ):
            raise

        except ValueError as decode_exc:
            raise GenerationAPIError(
                f"{self.provider} returned a non-JSON body",
                status_code=502,
                response_body=None,
            ) from decode_exc

        except httpx.HTTPError as http_exc:
            raise GenerationAPIError(
                f"Transport error calling {self.provider}: {http_exc}",
                status_code=503,
                response_body=None,
            ) from http_exc

        if not isinstance(data, dict):
            raise GenerationAPIError(
                f"{self.provider} returned a {type(data).__name__} instead of a JSON object",
                status_code=502,
                response_body=str(data)[:500],
            )
        try:
            answer = self._parse_answer(data)
        except (AttributeError, KeyError, TypeError) as parse_exc:
            raise GenerationAPIError(
                f"{self.provider} returned an unexpected response shape",
                status_code=502,
                response_body=str(data)[:500],
            ) from parse_exc
        return answer.strip() if isinstance(answer, str) else ""

    def generate(self, instruction: str, context: str) -> str:
        """
        Send an instruction plus bounded context and return the answer text.

        Rate-limit responses are retried with exponential backoff; every other
        failure propagates so the caller can apply its own policy.
        """

        @retry(
            retry=retry_if_exception_type(GenerationRateLimitError),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(
                multiplier=DEFAULT_EXPONENTIAL_MULTIPLIER,
                min=self.initial_wait,
                max=self.max_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _retry_wrapper():
            return self._post(instruction, context)

        return _retry_wrapper()

    __call__ = generate


class HeadOfficeClient(BaseGenerationClient):
    """Client for the HeadOffice ``/openai/question`` endpoint (question + context)."""

    provider = "headoffice"

    def __init__(self, base_url: str, api_key: str, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key

    def _build_request(self, instruction: str, context: str) -> Dict[str, Any]:
        return {
            "url": f"{self.base_url}/openai/question",
            "headers": {"Authorization": f"Bearer {self.api_key}"},
            "json": {"context": context, "question": instruction},
        }

    def _parse_answer(self, data: Dict[str, Any]) -> str:
        answer = data.get("answer")
        nested = data.get("data")
        if answer is None and isinstance(nested, dict):
            answer = nested.get("answer")
        return answer if isinstance(answer, str) else ""


class GeminiClient(BaseGenerationClient):
    """Client for the Gemini REST ``generateContent`` endpoint."""

    provider = "gemini"
    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(self, api_key: str, model_name: str = "gemini-2.5-flash", **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.model_name = model_name
        self.generation_config = {"maxOutputTokens": 2048, "temperature": 0.3}

    def _resolve_model_path(self) -> str:
        name = self.model_name
        return name if name.startswith("models/") else f"models/{name}"

    def _build_request(self, instruction: str, context: str) -> Dict[str, Any]:
        prompt = f"{instruction}\n\nCONTEXTO:\n{context}"
        return {
            "url": f"{self.BASE_URL}/{self._resolve_model_path()}:generateContent",
            "params": {"key": self.api_key},
            "json": {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": self.generation_config,
            },
        }

    def _parse_answer(self, data: Dict[str, Any]) -> str:
        candidates = data.get("candidates")
        for candidate in candidates if isinstance(candidates, list) else []:
            content = candidate.get("content") if isinstance(candidate, dict) else None
            parts = content.get("parts") if isinstance(content, dict) else None
            if not isinstance(parts, list):
                continue
            texts = [part.get("text") for part in parts if isinstance(part, dict) and part.get("text")]
            if texts:
                return "".join(texts)
        return ""


def build_generation_client(settings: Settings) -> BaseGenerationClient:
    """Create the client selected by ``generation_provider``."""
    retry_kwargs = {
        "timeout": settings.generation_timeout,
        "max_retries": settings.generation_max_retries,
        "initial_wait": settings.generation_initial_wait,
        "max_wait": settings.generation_max_wait,
    }
    if settings.generation_provider == "gemini":
        return GeminiClient(
            api_key=settings.gemini_api_key,
            model_name=settings.gemini_model,
            **retry_kwargs,
        )
    return HeadOfficeClient(
        base_url=settings.headoffice_api_url,
        api_key=settings.headoffice_api_key,
        **retry_kwargs,
    )


@lru_cache()
def get_generation_client() -> BaseGenerationClient:
    """Get cached generation client instance."""
    return build_generation_client(get_settings())
