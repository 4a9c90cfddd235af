"""Client for the hosted text-generation service (Anthropic Messages API)."""

from __future__ import annotations

from importlib import resources
from typing import TYPE_CHECKING, Any

import requests

from techdocs.exceptions import GenerationError
from techdocs.logging import logger
from techdocs.settings import DEFAULT_PROMPT_RESOURCE

if TYPE_CHECKING:
    from pathlib import Path

    from techdocs.settings import Settings

ANTHROPIC_VERSION = "2023-06-01"


def load_system_prompt(prompt_file: Path | None = None) -> str:
    """Read the README system prompt, defaulting to the one shipped with the package.

    Args:
        prompt_file (Path | None): optional prompt file overriding the bundled one

    Raises:
        GenerationError: if the prompt file cannot be read.

    Returns:
        str: the system prompt text
    """
    try:
        if prompt_file is not None:
            return prompt_file.read_text(encoding="utf-8")
        return resources.files("techdocs").joinpath(DEFAULT_PROMPT_RESOURCE).read_text(encoding="utf-8")
    except OSError as e:
        raise GenerationError(message=f"cannot read system prompt: {e}") from e


class ReadmeGenerator:
    """Send a system prompt and a content bundle, get generated text back.

    Args:
        api_key: key for the ``x-api-key`` header.
        model: model identifier.
        max_tokens: generated text token limit.
        api_url: Messages endpoint.
        timeout: HTTP timeout in seconds.
        session: optional ``requests.Session`` (connection reuse, tests).
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str,
        max_tokens: int = 4096,
        api_url: str,
        timeout: float = 300.0,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            msg = "ANTHROPIC_API_KEY environment variable not set"
            raise GenerationError(message=msg)
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings, session: requests.Session | None = None) -> ReadmeGenerator:
        return cls(
            settings.api_key,
            model=settings.model,
            max_tokens=settings.max_tokens,
            api_url=settings.api_url,
            timeout=settings.request_timeout,
            session=session,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "accept": "application/json",
            "content-type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def generate(self, system_prompt: str, content: str) -> str:
        """Ask the service to write text about ``content`` following ``system_prompt``.

        Raises:
            GenerationError: on transport, authentication, quota or response format failures.
        """
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": content}],
        }
        logger.info("generation_request", model=self.model, content_bytes=len(content.encode("utf-8")))
        try:
            resp = self.session.post(self.api_url, json=payload, headers=self._headers(), timeout=self.timeout)
            resp.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error("generation_http_error", status=status)
            raise GenerationError(message=f"text generation service returned HTTP {status}", status_code=status) from e
        except requests.RequestException as e:
            logger.error("generation_transport_error", error=str(e))
            raise GenerationError(message=f"cannot reach text generation service: {e}") from e

        try:
            body = resp.json()
            text = "".join(part["text"] for part in body["content"] if part.get("type", "text") == "text")
        except (ValueError, KeyError, TypeError) as e:
            raise GenerationError(message=f"unexpected response from text generation service: {e}") from e
        if not text:
            raise GenerationError(message="text generation service returned no text")
        logger.info("generation_done", bytes=len(text.encode("utf-8")))
        return text
