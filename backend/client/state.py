# backend/client/state.py
import asyncio
import logging
import re
import secrets
from pathlib import Path
from typing import Any, Callable, List, Optional
import httpx
from auth import AUTH_SUCCESS_MESSAGE
from errors import UpstreamError, VisionaryError
from models import ASPECT_RATIOS, GeneratedImage
from services.export_service import decode_data_uri
from client.history import HistoryStore, add_to_history

logger = logging.getLogger(__name__)

SAVE_SUCCESS_SECONDS = 3.0


class AppState:
    """Front-end state for the generator page, driven against the HTTP API.

    Every history mutation is written through to local storage. Failures end
    up in ``error`` and never propagate to the caller.
    """

    def __init__(self, api: httpx.AsyncClient, history_store: HistoryStore):
        self.api = api
        self.history_store = history_store
        self.prompt = ""
        self.aspect_ratio = "1:1"
        self.is_generating = False
        self.is_saving_to_google = False
        self.is_google_authenticated = False
        self.save_success = False
        self.error: Optional[str] = None
        self.current_image: Optional[GeneratedImage] = None
        self.history: List[GeneratedImage] = []
        self._save_success_timer: Optional[asyncio.TimerHandle] = None

    async def load(self):
        self.history = await self.history_store.load()
        try:
            resp = await self.api.get("/api/auth/google/status")
            self.is_google_authenticated = bool(resp.json().get("isAuthenticated"))
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to check Google auth status: %s", e)

    def handle_message(self, data: Any) -> None:
        if isinstance(data, dict) and data.get("type") == AUTH_SUCCESS_MESSAGE:
            self.is_google_authenticated = True

    def set_aspect_ratio(self, aspect_ratio: str) -> None:
        if aspect_ratio not in ASPECT_RATIOS:
            raise ValueError(f"Unsupported aspect ratio: {aspect_ratio}")
        self.aspect_ratio = aspect_ratio

    async def connect_google(self, open_window: Callable[[str], Any]) -> Optional[str]:
        try:
            resp = await self.api.get("/api/auth/google/url")
            url = resp.json()["url"]
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.error("Failed to get auth URL: %s", e)
            return None
        open_window(url)
        return url

    async def generate(self) -> Optional[GeneratedImage]:
        if not self.prompt.strip():
            return None

        self.is_generating = True
        self.error = None
        try:
            resp = await self.api.post("/api/openrouter-generate",
                                       json={"prompt": self.prompt, "aspectRatio": self.aspect_ratio})
            result = resp.json()
            if resp.status_code != 200:
                raise UpstreamError(result.get("error") or "Failed to generate image via OpenRouter")
            image = GeneratedImage(
                id=secrets.token_hex(4), url=result["url"], prompt=result["prompt"],
                aspectRatio=self.aspect_ratio, timestamp=result["timestamp"],
            )
        except (VisionaryError, httpx.HTTPError, ValueError, KeyError) as e:
            self.error = str(e) or "Something went wrong during generation."
            return None
        finally:
            self.is_generating = False

        self.current_image = image
        await self._set_history(add_to_history(self.history, image))
        return image

    async def save_to_google(self) -> bool:
        if not self.current_image:
            return False

        self.is_saving_to_google = True
        self.save_success = False
        self.error = None
        try:
            resp = await self.api.post("/api/save-to-google", json={
                "imageData": self.current_image.url,
                "prompt": self.current_image.prompt,
                "aspectRatio": self.current_image.aspectRatio,
            })
            data = resp.json()
            if not data.get("success"):
                raise UpstreamError(data.get("error") or "Failed to save")
        except (VisionaryError, httpx.HTTPError, ValueError) as e:
            self.error = str(e)
            return False
        finally:
            self.is_saving_to_google = False

        self._flag_save_success()
        return True

    def _flag_save_success(self):
        self.save_success = True
        if self._save_success_timer:
            self._save_success_timer.cancel()
        self._save_success_timer = asyncio.get_running_loop().call_later(
            SAVE_SUCCESS_SECONDS, self._clear_save_success)

    def _clear_save_success(self):
        self.save_success = False
        self._save_success_timer = None

    def select(self, image_id: str) -> Optional[GeneratedImage]:
        for image in self.history:
            if image.id == image_id:
                self.current_image = image
                return image
        return None

    async def delete_from_history(self, image_id: str) -> None:
        await self._set_history([image for image in self.history if image.id != image_id])
        if self.current_image and self.current_image.id == image_id:
            self.current_image = None

    async def clear_history(self) -> None:
        await self._set_history([])
        self.current_image = None

    async def download_image(self, image: GeneratedImage, directory: Path) -> Path:
        if image.url.startswith("data:"):
            data = decode_data_uri(image.url)
        else:
            resp = await self.api.get(image.url)
            resp.raise_for_status()
            data = resp.content
        name = re.sub(r'[\\/:*?"<>|\x00]', '_', image.prompt[:20]) or "image"
        path = Path(directory) / f"{name}.png"
        path.write_bytes(data)
        return path

    async def _set_history(self, history: List[GeneratedImage]):
        self.history = history
        await self.history_store.save(history)
