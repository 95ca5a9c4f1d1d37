# schedule_health/narrative/client.py

"""
Client for the external text-generation service that writes the narrative
schedule report.

The service speaks the Azure OpenAI chat-completions protocol:

    POST {endpoint}/openai/deployments/{deployment}/chat/completions?api-version=...
    headers: api-key
    body:    {"messages": [{"role": ..., "content": ...}, ...]}

A client is constructed by its owner (CLI, dashboard page) and passed in
explicitly; there is no module-level instance.
"""

import logging
import re
from typing import Dict, List, Optional

import requests

from schedule_health.narrative.retry import (
    RetryableStatusError,
    RetryPolicy,
    is_retryable_status,
)

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2025-01-01-preview"
DEFAULT_TIMEOUT_SECONDS = 30

TRUNCATION_NOTE = "\n\n*Note: This response was truncated due to length limits.*"

Message = Dict[str, str]

_URL_RE = re.compile(r"https?://\S+", re.IGNORECASE)
_CREDENTIAL_RE = re.compile(r"api[\s_-]?key", re.IGNORECASE)
_IP_RE = re.compile(r"\b\d{1,3}(?:\.\d{1,3}){3}\b")


class NarrativeError(RuntimeError):
    """User-facing narrative failure. The message is already redacted."""


def redact(text: str) -> str:
    """Strip URLs, credential markers and IP addresses from an error message."""
    text = _URL_RE.sub("[URL]", str(text))
    text = _CREDENTIAL_RE.sub("credentials", text)
    return _IP_RE.sub("[IP]", text)


class NarrativeClient:
    def __init__(
        self,
        endpoint: str,
        api_key: str,
        deployment: str,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retry_policy: Optional[RetryPolicy] = None,
        session: Optional[requests.Session] = None,
    ):
        self.endpoint = (endpoint or "").rstrip("/")
        self.api_key = api_key or ""
        self.deployment = deployment or ""
        self.api_version = api_version or DEFAULT_API_VERSION
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings, session: Optional[requests.Session] = None) -> "NarrativeClient":
        return cls(
            endpoint=settings.NARRATIVE_ENDPOINT,
            api_key=settings.NARRATIVE_API_KEY,
            deployment=settings.NARRATIVE_DEPLOYMENT,
            api_version=settings.NARRATIVE_API_VERSION,
            timeout=settings.NARRATIVE_TIMEOUT,
            retry_policy=RetryPolicy(
                max_attempts=settings.NARRATIVE_MAX_ATTEMPTS,
                base_delay=settings.NARRATIVE_BASE_DELAY,
                max_delay=settings.NARRATIVE_MAX_DELAY,
            ),
            session=session,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint and self.api_key and self.deployment)

    @property
    def url(self) -> str:
        return (
            f"{self.endpoint}/openai/deployments/{self.deployment}"
            f"/chat/completions?api-version={self.api_version}"
        )

    # ---- request ----

    def _post(self, messages: List[Message]) -> dict:
        response = self.session.post(
            self.url,
            headers={"Content-Type": "application/json", "api-key": self.api_key},
            json={"messages": messages},
            timeout=self.timeout,
        )
        if is_retryable_status(response.status_code):
            raise RetryableStatusError(response.status_code, response.text)
        if not response.ok:
            raise NarrativeError(redact(f"API error: {response.status_code} {response.text[:200]}"))
        try:
            return response.json()
        except ValueError as e:
            raise NarrativeError("Invalid response format from narrative service") from e

    @staticmethod
    def _extract_text(data: dict) -> str:
        try:
            choice = data["choices"][0]
            content = choice["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise NarrativeError("Invalid response format from narrative service") from e

        if not isinstance(content, str):
            raise NarrativeError("Invalid response format from narrative service")

        if choice.get("finish_reason") == "length":
            content += TRUNCATION_NOTE
        return content

    def send_message(self, messages: List[Message], sleep=None) -> str:
        """
        Send a conversation and return the reply text.

        Raises:
            NarrativeError: missing configuration, non-retryable response, or
            retries exhausted
        """
        if not self.is_configured:
            raise NarrativeError(
                "Narrative service is not configured. Set NARRATIVE_ENDPOINT, "
                "NARRATIVE_API_KEY and NARRATIVE_DEPLOYMENT."
            )
        if not messages:
            raise NarrativeError("No messages to send")

        try:
            data = self.retry_policy.call(
                lambda: self._post(messages),
                operation_name="narrative request",
                sleep=sleep,
            )
        except NarrativeError:
            raise
        except requests.Timeout as e:
            raise NarrativeError("Request timed out. Please try again.") from e
        except requests.ConnectionError as e:
            raise NarrativeError("Network error. Please check your connection.") from e
        except RetryableStatusError as e:
            raise NarrativeError(redact(f"Service unavailable ({e.status_code}). Please try again later.")) from e
        except requests.RequestException as e:
            raise NarrativeError(redact(f"Request failed: {e}")) from e

        text = self._extract_text(data)
        logger.info("Narrative reply received (%d characters)", len(text))
        return text
