"""
Generative text client with an ordered API key x model fallback chain.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, TYPE_CHECKING

import httpx

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_API_URL = "https://generativelanguage.googleapis.com/v1beta"
EXHAUSTED_MARKER = b"\n[ERROR] All generative models failed.\n"


@dataclass(frozen=True)
class GenerationAttempt:
    """One (credential, model) combination of the fallback chain."""

    key_index: int
    api_key: str
    model: str


def build_attempts(api_keys: Sequence[str], models: Sequence[str]) -> List[GenerationAttempt]:
    """Every key with every model, key-major, in configuration order."""
    return [
        GenerationAttempt(key_index=index, api_key=api_key, model=model)
        for index, api_key in enumerate(api_keys)
        for model in models
    ]


class GenerativeClient:
    """
    Streams generated text from the first working key/model combination.

    Attempts run strictly in order. An attempt fails when the upstream
    answers with an error status or the request breaks before any chunk was
    relayed; the next combination is then tried. Once a chunk has been
    relayed the attempt is committed: a later break ends the stream with
    ``EXHAUSTED_MARKER`` rather than splicing in another model's output.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_keys: Sequence[str],
        models: Sequence[str],
        *,
        api_url: str = DEFAULT_API_URL,
        temperature: float = 0.7,
        max_output_tokens: int = 1024,
        timeout: float = 15.0,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.http_client = http_client
        self.attempts = build_attempts(api_keys, models)
        self.api_url = api_url.rstrip("/")
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger("proxy.generative")

    def build_request_body(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

    async def stream(self, prompt: str) -> AsyncIterator[bytes]:
        """Yield raw upstream chunks in arrival order, or the exhaustion marker."""
        body = self.build_request_body(prompt)

        for attempt in self.attempts:
            url = f"{self.api_url}/models/{attempt.model}:streamGenerateContent"
            relayed = False
            try:
                async with self.http_client.stream(
                    "POST",
                    url,
                    params={"alt": "sse", "key": attempt.api_key},
                    json=body,
                    timeout=self.timeout,
                ) as response:
                    if response.status_code >= 400:
                        detail = await response.aread()
                        self.logger.warning(
                            "Generative model rejected request",
                            model=attempt.model,
                            key_index=attempt.key_index,
                            status_code=response.status_code,
                            detail=detail[:300].decode("utf-8", errors="replace"),
                        )
                        self._record(attempt.model, "rejected")
                        continue

                    async for chunk in response.aiter_bytes():
                        if not chunk:
                            continue
                        relayed = True
                        yield chunk
            except httpx.HTTPError as exc:
                if relayed:
                    self.logger.error(
                        "Generative stream broke after output was sent",
                        model=attempt.model,
                        key_index=attempt.key_index,
                        error=str(exc),
                    )
                    self._record(attempt.model, "interrupted")
                    yield EXHAUSTED_MARKER
                    return

                self.logger.warning(
                    "Generative model request failed",
                    model=attempt.model,
                    key_index=attempt.key_index,
                    error=str(exc) or exc.__class__.__name__,
                )
                self._record(attempt.model, "error")
                continue

            if not relayed:
                self.logger.warning(
                    "Generative model returned an empty response",
                    model=attempt.model,
                    key_index=attempt.key_index,
                )
                self._record(attempt.model, "empty")
                continue

            self.logger.info("Generative stream completed", model=attempt.model, key_index=attempt.key_index)
            self._record(attempt.model, "success")
            return

        self.logger.error("All generative key/model combinations failed", attempts=len(self.attempts))
        yield EXHAUSTED_MARKER

    def _record(self, model: str, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("generative_attempts_total", model=model, outcome=outcome)
