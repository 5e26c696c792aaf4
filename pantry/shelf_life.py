"""Shelf-life guesses from a hosted chat-completions model."""
import re
from typing import Any, Optional

import httpx

from .core.config import settings
from .error_handlers import EstimationUnavailableError
from .logging_config import get_logger

logger = get_logger("shelf_life")

_PROMPT = """\
You are an expert in supermarket food safety and storage.

Guess a realistic number of expiry days for the product "{product_name}", \
assuming it is bought fresh from a typical supermarket and stored properly \
in a home fridge or pantry.

Only respond with the number of days as an integer. Do not include units \
like "days" or any extra text.

If the product can vary (e.g., "meat"), choose the most common type (e.g., minced beef).
"""

_BARE_INT = re.compile(r"^\d+$")


def build_messages(product_name: str) -> list[dict[str, str]]:
    return [{"role": "user", "content": _PROMPT.format(product_name=product_name)}]


def parse_days(content: Optional[str]) -> Optional[int]:
    """'12' -> 12; '12 days', '', '0' -> None."""
    if content is None:
        return None
    text = content.strip()
    if not _BARE_INT.match(text):
        return None
    days = int(text)
    return days if days > 0 else None


class ShelfLifeEstimator:
    """
    Asks the inference service how many days a product keeps.
    Unreachable service and unusable replies both come back as None.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.inference_api_key
        self.url = url or settings.inference_url
        self.model = model or settings.inference_model
        self.timeout = timeout or settings.inference_timeout
        self._client = client

    async def estimate(self, product_name: str) -> Optional[int]:
        try:
            content = await self._complete(build_messages(product_name))
        except EstimationUnavailableError as exc:
            # TODO: report unreachable vs. unparseable separately once callers need it
            logger.warning(f"[EXPIRY] No estimate for {product_name!r}: {exc.message}")
            return None

        days = parse_days(content)
        if days is None:
            logger.warning(f"[EXPIRY] Unusable estimate for {product_name!r}: {content!r}")
        else:
            logger.info(f"[EXPIRY] {product_name!r} keeps ~{days} days")
        return days

    async def _complete(self, messages: list[dict[str, str]]) -> Optional[str]:
        if not self.api_key:
            raise EstimationUnavailableError("no API key configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        body = {
            "model": self.model,
            "messages": messages,
            "max_tokens": 200,
            "temperature": 0.7,
            "top_p": 1,
            "stream": False,
        }
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=body, headers=headers)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise EstimationUnavailableError(type(exc).__name__, original_error=str(exc)) from exc
        except ValueError as exc:
            raise EstimationUnavailableError("invalid JSON", original_error=str(exc)) from exc

        return _message_content(payload)


def _message_content(payload: Any) -> Optional[str]:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None
