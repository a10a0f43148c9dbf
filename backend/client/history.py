# backend/client/history.py
import json
import logging
from typing import List
from pydantic import ValidationError
from errors import MalformedLocalStateError
from models import GeneratedImage
from client.storage import LocalStorage

logger = logging.getLogger(__name__)

HISTORY_KEY = "visionary_history"
HISTORY_LIMIT = 20


def add_to_history(history: List[GeneratedImage], image: GeneratedImage) -> List[GeneratedImage]:
    """Newest first; anything past the limit falls off the end."""
    return [image, *history][:HISTORY_LIMIT]


def parse_history(raw: str) -> List[GeneratedImage]:
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise MalformedLocalStateError(f"History is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise MalformedLocalStateError("History must be a JSON list")
    try:
        return [GeneratedImage.model_validate(item) for item in data][:HISTORY_LIMIT]
    except ValidationError as e:
        raise MalformedLocalStateError(f"History entry is invalid: {e}") from e


class HistoryStore:
    def __init__(self, storage: LocalStorage, key: str = HISTORY_KEY):
        self.storage = storage
        self.key = key

    async def load(self) -> List[GeneratedImage]:
        raw = await self.storage.get_item(self.key)
        if raw is None:
            return []
        try:
            return parse_history(raw)
        except MalformedLocalStateError as e:
            logger.warning("Failed to parse history, starting empty: %s", e)
            return []

    async def save(self, history: List[GeneratedImage]) -> None:
        await self.storage.set_item(self.key, json.dumps([image.model_dump() for image in history]))
