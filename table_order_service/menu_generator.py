from __future__ import annotations

import json
import logging
import random
from typing import Protocol

import httpx

from .models import MenuItemDraft, ProductCategory

logger = logging.getLogger(__name__)

GENERATION_FAILED_MESSAGE = "メニュー生成に失敗しました"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash"

PROMPT_TEMPLATE = (
    'Create a creative Japanese Izakaya menu item using these ingredients/themes: "{ingredients}". '
    "Return a JSON object with name, price (in JPY, between 500-1200), "
    'description (appetizing, max 40 chars), and a category (must be "おすすめ").'
)

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "name": {"type": "STRING"},
        "price": {"type": "NUMBER"},
        "description": {"type": "STRING"},
    },
    "required": ["name", "price", "description"],
}


class MenuGenerator(Protocol):
    def generate_daily_special(self, ingredients: str) -> MenuItemDraft: ...


class MenuGenerationError(Exception):
    """Raised when the menu generation backend cannot produce a draft."""

    def __init__(self, message: str = GENERATION_FAILED_MESSAGE):
        super().__init__(message)


class GeminiMenuGenerator:
    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        client: httpx.Client | None = None,
    ):
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=10.0)

    def generate_daily_special(self, ingredients: str) -> MenuItemDraft:
        payload = {
            "contents": [{"parts": [{"text": PROMPT_TEMPLATE.format(ingredients=ingredients)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }
        try:
            response = self._client.post(
                f"{self._base_url}/models/{self._model}:generateContent",
                json=payload,
                headers={"x-goog-api-key": self._api_key},
            )
        except httpx.HTTPError as exc:
            logger.error("Gemini generation failed: %s", exc)
            raise MenuGenerationError() from exc

        if response.status_code >= 400:
            logger.error("Gemini generation failed (%s): %s", response.status_code, response.text)
            raise MenuGenerationError()

        try:
            text = response.json()["candidates"][0]["content"]["parts"][0]["text"]
            result = json.loads(text or "{}")
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error("Gemini returned an unreadable payload: %s", exc)
            raise MenuGenerationError() from exc
        if not isinstance(result, dict):
            logger.error("Gemini returned a non-object payload: %r", result)
            raise MenuGenerationError()

        return MenuItemDraft(
            name=result.get("name") or "本日のスペシャル",
            price=_whole_yen(result.get("price")) or 800,
            category=ProductCategory.RECOMMEND,
            description=result.get("description") or "旬の食材を使った逸品です。",
            image_url=f"https://picsum.photos/400/300?random={random.randint(0, 999)}",
            special=True,
        )


class MockMenuGenerator:
    """Stand-in used only while no Gemini API key is configured."""

    def generate_daily_special(self, ingredients: str) -> MenuItemDraft:
        return MenuItemDraft(
            name=f"シェフの気まぐれ: {ingredients}風",
            price=850,
            category=ProductCategory.RECOMMEND,
            description=f"{ingredients}を贅沢に使った、本日限定の特別メニューです。",
            image_url="https://picsum.photos/400/300?random=99",
            special=True,
        )


def _whole_yen(value) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value <= 0:
        return None
    return int(round(value))
