from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, List, Optional
from urllib.error import HTTPError
from urllib.parse import quote
from urllib.request import Request, urlopen

from fragboard.thresholds import INSIGHT_KD_DECIMALS, INSIGHT_MAX_WORDS

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"

MISSING_KEY_MESSAGE = "Gemini API key is not configured."
EMPTY_ANSWER_MESSAGE = "No analysis could be generated right now."
FAILURE_MESSAGE = "The AI analyst is off today."


def format_ranking_summary(rows: List[Dict[str, Any]], top_n: Optional[int] = None) -> str:
    """One line per row, in the given order, with fixed K/D precision."""
    selected = rows if top_n is None else rows[:top_n]
    return "\n".join(
        f"{r['nick']}: KD {r['kd']:.{INSIGHT_KD_DECIMALS}f}, "
        f"Damage {r['damage']}, Assists {r['assists']}"
        for r in selected
    )


def build_prompt(rows: List[Dict[str, Any]], season_name: str, top_n: Optional[int] = None) -> str:
    summary = format_ranking_summary(rows, top_n)
    return (
        f"As a professional e-sports analyst, write a short analysis of the {season_name} ranking.\n"
        f"Name the MVP (based on K/D and damage) and give a funny piece of advice "
        f"to whoever is in last place.\n"
        f"Keep it brief (at most {INSIGHT_MAX_WORDS} words).\n"
        f"\n"
        f"Ranking data:\n"
        f"{summary}\n"
    )


class InsightClient:
    BASE = "https://generativelanguage.googleapis.com/v1beta/models"
    HEADERS = {
        "Content-Type": "application/json",
        "Accept": "application/json",
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: int = 30,
        temperature: float = 0.8,
        retry_sleep_seconds: float = 10.0,
    ):
        self.api_key = api_key if api_key is not None else self._key_from_env()
        self.model = model or os.getenv("FRAGBOARD_INSIGHT_MODEL", "").strip() or DEFAULT_MODEL
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self.retry_sleep_seconds = retry_sleep_seconds

    @staticmethod
    def _key_from_env() -> str:
        return (os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or "").strip()

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _endpoint(self) -> str:
        return f"{self.BASE}/{quote(self.model)}:generateContent?key={quote(self.api_key)}"

    def _post_json(self, url: str, payload: Dict[str, Any], retry_429: bool = True) -> Dict[str, Any]:
        body = json.dumps(payload).encode("utf-8")
        req = Request(url, data=body, headers=self.HEADERS, method="POST")
        try:
            with urlopen(req, timeout=self.timeout_seconds) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except HTTPError as exc:
            if exc.code == 429 and retry_429:
                time.sleep(self.retry_sleep_seconds)
                return self._post_json(url, payload, retry_429=False)
            raise

    @staticmethod
    def extract_text(response: Dict[str, Any]) -> str:
        if not isinstance(response, dict):
            return ""
        candidates = response.get("candidates") or []
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return ""
        content = candidates[0].get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return ""
        return "".join(str(p.get("text") or "") for p in parts if isinstance(p, dict)).strip()

    def generate(self, rows: List[Dict[str, Any]], season_name: str, top_n: Optional[int] = None) -> str:
        """Ask the hosted model for commentary; returns a fallback line on any failure."""
        if not self.enabled:
            return MISSING_KEY_MESSAGE

        payload = {
            "contents": [{"parts": [{"text": build_prompt(rows, season_name, top_n)}]}],
            "generationConfig": {"temperature": self.temperature},
        }
        try:
            response = self._post_json(self._endpoint(), payload)
        except (OSError, ValueError) as exc:
            # URLError, HTTPError and socket errors are OSError; bad JSON or encoding is ValueError
            LOGGER.warning("Insight request failed: %s", exc)
            return FAILURE_MESSAGE

        text = self.extract_text(response)
        if not text:
            LOGGER.warning("Insight response had no text")
            return EMPTY_ANSWER_MESSAGE
        return text
