"""
OpenAI-backed predictor backend.

One backend instance per predictor slot, each with its own API key.
The backend only returns raw model text; interpretation and fallback
live in predictors.py.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI

from ..config import secrets
from ..config.settings import OracleSettings
from .predictors import Backend

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You forecast the next result of a color game. Results are digits 0-9. "
    "Colors: 0,2,4,6,8 are Red; 1,3,5,7 are Green; 9 is Violet. "
    "Sizes: 5-9 are Big; 0-4 are Small. "
    'Respond with JSON only: {"color": "Red|Green|Violet", "size": "Big|Small"}'
)


def build_prompt(recent_history: List[Dict[str, Any]], predictor_name: str) -> str:
    """User prompt with the recent draws, newest first."""
    return (
        f"You are predictor {predictor_name}. "
        f"Last results (newest first): {json.dumps(recent_history)}. "
        "Predict the color and size of the next result."
    )


class OpenAIPredictorBackend:
    """Callable backend: (recent_history, predictor_name) -> raw text."""

    def __init__(self, api_key: str, model: str, timeout: float = 15.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client: Optional[OpenAI] = None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            # Retries are left to the next batch, not the client
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def __call__(self, recent_history: List[Dict[str, Any]], predictor_name: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(recent_history, predictor_name)},
            ],
            max_tokens=50,
            temperature=0.9,
        )
        return (response.choices[0].message.content or "").strip()


def build_backends(settings: OracleSettings) -> List[Optional[Backend]]:
    """
    Create one backend per slot; slots without a key get None (fallback mode).
    """
    backends: List[Optional[Backend]] = []
    for slot_id in range(1, settings.slot_count + 1):
        try:
            key = secrets.require_predictor_key(slot_id, settings.share_default_key)
        except secrets.MissingAPIKeyError:
            logger.info(f"AI-{slot_id}: no API key configured, using random fallback")
            backends.append(None)
            continue
        backends.append(
            OpenAIPredictorBackend(key, settings.model, settings.model_timeout_seconds)
        )
    return backends
