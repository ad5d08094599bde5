"""
llm.py -- Outbound calls to the meal assistant (Anthropic Messages API).

This is the metered action gated by usage/ledger.py. It is an opaque
text-in / text-out call: one system prompt, one user message, one text reply.
Every failure mode (no key, network error, timeout, HTTP error, unexpected
payload) collapses into UpstreamFailure. No retries -- a failed call fails
the request and is not counted against the user's quota.
"""

import logging
from typing import Optional

import requests

from core.exceptions import UpstreamFailure

logger = logging.getLogger("mealplanner.llm")

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


class CompletionClient:
    """Thin synchronous client for the Anthropic Messages API.

    Usage:
        client = CompletionClient(api_key="sk-...", model="claude-sonnet-4-5-20250929")
        text = client.invoke("You are a helpful meal planning assistant.", "eggs, rice")
        client.close()
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 1024,
        timeout: float = 30.0,
        url: str = ANTHROPIC_MESSAGES_URL,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.url = url
        self._api_key = api_key
        # One pooled session per client; max_redirects=3 because this is a
        # single known endpoint.
        self._session = requests.Session()
        self._session.max_redirects = 3

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def invoke(self, system_prompt: str, user_message: str) -> str:
        """Send one message and return the assistant's text reply.

        Raises UpstreamFailure on any failure. The raw error is logged here
        and never forwarded to the client.
        """
        if not self._api_key:
            logger.error("Meal assistant call refused: ANTHROPIC_API_KEY is not configured")
            raise UpstreamFailure("ANTHROPIC_API_KEY not configured")

        body: dict = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": user_message}],
        }
        if system_prompt:
            body["system"] = system_prompt

        try:
            resp = self._session.post(
                self.url,
                headers={
                    "x-api-key": self._api_key,
                    "anthropic-version": ANTHROPIC_VERSION,
                    "content-type": "application/json",
                },
                json=body,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            logger.warning("Meal assistant call failed: %s", e)
            raise UpstreamFailure(str(e)) from e
        except ValueError as e:
            logger.warning("Meal assistant returned non-JSON body: %s", e)
            raise UpstreamFailure("non-JSON response") from e

        text = _first_text_block(data)
        if text is None:
            logger.warning("Meal assistant response had no text content block")
            raise UpstreamFailure("empty response")
        return text

    def close(self) -> None:
        self._session.close()


def _first_text_block(data: dict) -> Optional[str]:
    # Messages API: content is a list of typed blocks; we want the first text one.
    content = data.get("content") if isinstance(data, dict) else None
    if not isinstance(content, list):
        return None
    for block in content:
        if isinstance(block, dict) and block.get("type", "text") == "text" and isinstance(block.get("text"), str):
            return block["text"]
    return None
