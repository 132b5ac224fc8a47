from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Protocol

import requests
from pydantic import ValidationError
from rich.console import Console

from ..errors import ParseError, ServiceError
from ..schemas.metrics import VisionMetrics
from ..schemas.report import AnalysisReport
from .prompt import system_prompt, user_prompt
from .repair import parse_report_json

console = Console(stderr=True)

DEFAULT_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_MODEL = "x-ai/grok-4.1-fast:free"

class NarrativeService(Protocol):
    def generate(self, metrics: VisionMetrics) -> AnalysisReport: ...

@dataclass(frozen=True)
class NarrativeConfig:
    endpoint: str = DEFAULT_ENDPOINT
    model: str = DEFAULT_MODEL
    temperature: float = 0.7
    max_tokens: int = 3000
    timeout_seconds: float = 60.0
    api_key: str | None = None
    referer: str = "https://github.com/visionreader/visionreader"
    app_title: str = "visionreader"

    @classmethod
    def from_env(cls, **overrides) -> "NarrativeConfig":
        # Only the credential comes from the environment; endpoint and model are static.
        overrides.setdefault("api_key", os.environ.get("OPENROUTER_API_KEY") or None)
        return cls(**overrides)

def report_from_payload(payload: dict[str, Any], metrics: VisionMetrics) -> AnalysisReport:
    # The mode we asked for wins over whatever the model echoed back.
    data = dict(payload)
    data["mode"] = metrics.mode
    try:
        return AnalysisReport.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"report does not match schema: {e.error_count()} error(s)") from e

class OpenRouterNarrativeService:
    """Chat-completions client for an OpenAI-compatible endpoint."""

    def __init__(self, cfg: NarrativeConfig | None = None, session: requests.Session | None = None):
        self.cfg = cfg or NarrativeConfig.from_env()
        self._http = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        h = {
            "Content-Type": "application/json",
            "HTTP-Referer": self.cfg.referer,
            "X-Title": self.cfg.app_title,
        }
        if self.cfg.api_key:
            h["Authorization"] = f"Bearer {self.cfg.api_key}"
        return h

    def _body(self, metrics: VisionMetrics) -> dict[str, Any]:
        return {
            "model": self.cfg.model,
            "messages": [
                {"role": "system", "content": system_prompt(metrics.mode)},
                {"role": "user", "content": user_prompt(metrics)},
            ],
            "temperature": self.cfg.temperature,
            "max_tokens": self.cfg.max_tokens,
        }

    def complete(self, metrics: VisionMetrics) -> str:
        """POST the prompt and return the raw assistant text."""
        try:
            r = self._http.post(
                self.cfg.endpoint,
                headers=self._headers(),
                json=self._body(metrics),
                timeout=self.cfg.timeout_seconds,
            )
        except requests.Timeout as e:
            raise ServiceError(f"narrative service timed out after {self.cfg.timeout_seconds:.0f}s") from e
        except requests.RequestException as e:
            raise ServiceError(f"narrative service unreachable: {e}") from e

        if not r.ok:
            try:
                detail = (r.json().get("error") or {}).get("message") or r.text
            except (ValueError, AttributeError):
                detail = r.text
            raise ServiceError(f"request failed ({r.status_code}): {detail}", status=r.status_code)

        try:
            result = r.json()
        except ValueError as e:
            raise ParseError("service response is not JSON") from e
        if isinstance(result, dict) and result.get("error"):
            err = result["error"]
            msg = err.get("message") if isinstance(err, dict) else str(err)
            raise ServiceError(f"service error: {msg}")
        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ParseError("service response has no message content") from e
        if not isinstance(content, str) or not content.strip():
            raise ParseError("service returned empty content")
        return content

    def generate(self, metrics: VisionMetrics) -> AnalysisReport:
        text = self.complete(metrics)
        try:
            payload = parse_report_json(text)
        except ParseError:
            console.print(f"[yellow]Unparseable narrative payload[/yellow] ({len(text)} chars)")
            raise
        return report_from_payload(payload, metrics)
