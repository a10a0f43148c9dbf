# backend/services/image_service.py
import logging
import time
from functools import lru_cache
from typing import Optional
import httpx
from config import OpenRouterSettings
from errors import UpstreamError

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to generate image via OpenRouter"


def _upstream_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return GENERIC_FAILURE
    error = body.get('error') if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get('message') or GENERIC_FAILURE
    return error or GENERIC_FAILURE


class OpenRouterImageClient:
    def __init__(self, settings: OpenRouterSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    async def generate(self, prompt: str, aspect_ratio: str) -> dict:
        """Makes a single image request. Returns {url, prompt, timestamp}; no retries."""
        payload = {
            "model": self.settings.model,
            "messages": [{"role": "user", "content": prompt}],
            "modalities": ["image", "text"],
            "image_config": {"aspect_ratio": aspect_ratio},
        }
        headers = {"Authorization": f"Bearer {self.settings.api_key}"}
        async with httpx.AsyncClient(base_url=self.settings.base_url, transport=self.transport, timeout=None) as client:
            try:
                resp = await client.post("/chat/completions", json=payload, headers=headers)
            except httpx.HTTPError as e:
                raise UpstreamError(str(e) or GENERIC_FAILURE) from e

        if resp.status_code != 200:
            raise UpstreamError(_upstream_message(resp))

        try:
            message = resp.json()['choices'][0]['message']
            url = message['images'][0]['image_url']['url']
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise UpstreamError("OpenRouter returned no image") from e
        if not url:
            raise UpstreamError("OpenRouter returned no image")

        logger.info("Generated image with %s (%s)", self.settings.model, aspect_ratio)
        return {"url": url, "prompt": prompt, "timestamp": int(time.time() * 1000)}


@lru_cache
def get_image_client() -> OpenRouterImageClient:
    return OpenRouterImageClient(OpenRouterSettings.from_env())
