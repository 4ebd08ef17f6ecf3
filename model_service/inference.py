#!/usr/bin/env python3
"""
inference.py – advisory oracles
-------------------------------
An oracle turns the most recent price window into
`{recommendation: CALL|PUT|HOLD, reasoning, confidence 0-100}`.

• GeminiOracle   – Generative Language REST API, JSON response schema.
• MomentumOracle – offline stand-in (last price vs. 5 ticks back).

`analyze()` is blocking and may raise `AdvisoryError`; the poller runs it
in a worker thread and owns the HOLD fallback.
"""
from __future__ import annotations

import json
from typing import Any, Callable, Dict, Protocol, Sequence, Union

import requests

from shared.config    import EngineConfig
from shared.constants import GEMINI_URL, MOMENTUM_LOOKBACK
from shared.logging   import get_logger
from shared.models    import Advisory

log = get_logger("model_service.inference")

RECOMMENDATIONS = ("CALL", "PUT", "HOLD")

PROMPT = (
    "Act as a high-frequency scalping expert for the {asset} index. "
    "Analyse these recent tick prices, oldest first: {prices}. "
    "Identify whether there is a micro up-trend (CALL) or down-trend (PUT). "
    "If the market is ranging, answer HOLD."
)

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "recommendation": {"type": "STRING", "enum": list(RECOMMENDATIONS)},
        "reasoning":      {"type": "STRING"},
        "confidence":     {"type": "NUMBER", "description": "Confidence score 0-100"},
    },
    "required": ["recommendation", "reasoning", "confidence"],
}


class AdvisoryError(RuntimeError):
    """Oracle answered with something unusable (HTTP error, bad JSON …)."""


class Oracle(Protocol):
    def analyze(self, prices: Sequence[float]) -> Advisory: ...


def parse_advisory(payload: Dict[str, Any]) -> Advisory:
    """Normalise a decoded oracle answer; unknown recommendation → error."""
    if not isinstance(payload, dict):
        raise AdvisoryError(f"expected an object, got {type(payload).__name__}")
    rec = str(payload.get("recommendation", "")).upper()
    if rec not in RECOMMENDATIONS:
        raise AdvisoryError(f"unknown recommendation {payload.get('recommendation')!r}")
    raw_conf = payload.get("confidence")
    try:
        conf = 50.0 if raw_conf is None else float(raw_conf)
    except (TypeError, ValueError):
        raise AdvisoryError(f"bad confidence {raw_conf!r}") from None
    return Advisory(
        recommendation=rec,
        reasoning=str(payload.get("reasoning") or "Analysis complete."),
        confidence=min(100.0, max(0.0, conf)),
    )


class GeminiOracle:
    def __init__(self, api_key: str, model: str = "gemini-2.5-flash",
                 timeout: float = 8.0,
                 asset: Union[str, Callable[[], str]] = "Volatility 100",
                 session: requests.Session | None = None) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.asset = asset
        self.session = session or requests.Session()

    def current_asset(self) -> str:
        # settings may change the asset after the oracle is built
        return self.asset() if callable(self.asset) else self.asset

    def analyze(self, prices: Sequence[float]) -> Advisory:
        if not self.api_key:
            log.warning("GEMINI_API_KEY not set – holding")
            return Advisory.hold("No API key configured.")

        body = {
            "contents": [{"parts": [{"text": PROMPT.format(
                asset=self.current_asset(), prices=json.dumps([round(p, 5) for p in prices]))}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }
        try:
            resp = self.session.post(
                GEMINI_URL.format(self.model),
                headers={"x-goog-api-key": self.api_key},
                json=body,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            text = resp.json()["candidates"][0]["content"]["parts"][0]["text"]
            return parse_advisory(json.loads(text))
        except requests.RequestException as exc:
            raise AdvisoryError(f"gemini request failed – {exc}") from exc
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise AdvisoryError(f"malformed gemini response – {exc}") from exc


class MomentumOracle:
    """Simulated analysis: trend of the last few ticks, fixed confidence."""

    confidence = 75.0

    def analyze(self, prices: Sequence[float]) -> Advisory:
        if len(prices) < MOMENTUM_LOOKBACK:
            return Advisory.hold("Not enough ticks for momentum.")
        diff = prices[-1] - prices[-MOMENTUM_LOOKBACK]
        return Advisory(
            recommendation="CALL" if diff > 0 else "PUT",
            reasoning="Simulated analysis: simple momentum trend.",
            confidence=self.confidence,
        )


def build_oracle(cfg: EngineConfig,
                 asset: Union[str, Callable[[], str]] = "Volatility 100") -> Oracle:
    if cfg.advisory_backend == "momentum":
        return MomentumOracle()
    if cfg.advisory_backend != "gemini":
        raise ValueError(f"unknown ADVISORY_BACKEND {cfg.advisory_backend!r}")
    return GeminiOracle(cfg.gemini_api_key, cfg.gemini_model, cfg.advisory_timeout_s, asset)
