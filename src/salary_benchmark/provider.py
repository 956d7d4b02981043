"""Async market-data provider backed by a generative AI model over HTTP"""

import asyncio
import json
from typing import Any, Protocol

import httpx
from loguru import logger

from salary_benchmark.config import DEFAULT_MODEL
from salary_benchmark.models import TargetPosition
from salary_benchmark.positions import LOCATIONS
from salary_benchmark.utils import PromptLoadError, render_prompt

GENERATE_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

RETRY_STATUS_CODES = (429, 503)


class ProviderError(Exception):
    """Raised when market data cannot be fetched or parsed."""
    pass


class MarketDataProvider(Protocol):
    async def fetch_postings(self, target: TargetPosition) -> list[dict[str, Any]]:
        ...


def build_crawl_prompt(target: TargetPosition, locations: list[str] | None = None) -> str:
    """Render the market crawl prompt for a target position."""
    return render_prompt(
        "market_crawl",
        name=target.name,
        keywords=", ".join(target.keywords),
        responsibilities=target.responsibilities,
        competitors=", ".join(target.competitors),
        locations=", ".join(locations or LOCATIONS),
    )


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_generation_response(payload: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Extract the JSON array of postings from a generateContent response body.

    Args:
        payload: Decoded JSON response

    Returns:
        list[dict]: Raw posting records (non-dict items are dropped)

    Raises:
        ProviderError: If the response has no text or the text is not a JSON array
    """
    try:
        parts = payload["candidates"][0]["content"]["parts"]
        text = "".join(part.get("text", "") for part in parts)
    except (KeyError, IndexError, TypeError, AttributeError) as e:
        raise ProviderError(f"Unexpected response structure: {e}")

    text = _strip_code_fence(text) or "[]"
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProviderError(f"Response is not valid JSON: {e}")

    if not isinstance(data, list):
        raise ProviderError(f"Expected a JSON array of postings, got {type(data).__name__}")

    return [item for item in data if isinstance(item, dict)]


async def post_with_backoff(
    client: httpx.AsyncClient,
    url: str,
    body: dict[str, Any],
    headers: dict[str, str] | None = None,
    max_retries: int = 3,
    base_delay: float = 1.0,
) -> httpx.Response:
    """POST with exponential backoff on 429/503 and transport errors

    Args:
        client: httpx AsyncClient
        url: URL to post to
        body: JSON body
        headers: Extra request headers
        max_retries: Maximum attempts
        base_delay: Base delay in seconds for exponential backoff

    Returns:
        httpx.Response

    Raises:
        ProviderError: If the request fails after retries
    """
    for attempt in range(max_retries):
        try:
            response = await client.post(url, json=body, headers=headers)

            if response.status_code in RETRY_STATUS_CODES and attempt < max_retries - 1:
                delay = base_delay * (2 ** attempt)
                logger.warning(f"Rate limited (status {response.status_code}), retrying after {delay}s...")
                await asyncio.sleep(delay)
                continue

            response.raise_for_status()
            return response

        except httpx.HTTPStatusError as e:
            raise ProviderError(f"HTTP error {e.response.status_code} from market data provider") from e
        except httpx.RequestError as e:
            if attempt < max_retries - 1:
                delay = base_delay * (2 ** attempt)
                logger.warning(f"Request error: {e}, retrying after {delay}s...")
                await asyncio.sleep(delay)
                continue
            raise ProviderError(f"Request to market data provider failed: {e}") from e

    raise ProviderError(f"Failed to reach market data provider after {max_retries} attempts")


class GeminiMarketDataProvider:
    """Simulates a job-board crawl by asking a Gemini model for postings."""

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        timeout: float = 60.0,
        locations: list[str] | None = None,
        client: httpx.AsyncClient | None = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.locations = locations or list(LOCATIONS)
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._client = client

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )

    async def fetch_postings(self, target: TargetPosition) -> list[dict[str, Any]]:
        """
        Fetch raw posting records for a target position.

        Args:
            target: Target position to collect data for

        Returns:
            list[dict]: Raw records, to be validated at the ingestion boundary

        Raises:
            ProviderError: On missing credentials, transport or parse failure
        """
        if not self.api_key:
            raise ProviderError("No API key configured for the market data provider")

        try:
            prompt = build_crawl_prompt(target, self.locations)
        except PromptLoadError as e:
            raise ProviderError(f"Could not build crawl prompt: {e}") from e

        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        url = GENERATE_URL.format(model=self.model)
        headers = {"x-goog-api-key": self.api_key}

        logger.info(f"Requesting market data for position {target.id} ({target.name}) from {self.model}")
        if self._client is not None:
            response = await post_with_backoff(self._client, url, body, headers, self.max_retries, self.base_delay)
        else:
            async with self._create_client() as client:
                response = await post_with_backoff(client, url, body, headers, self.max_retries, self.base_delay)

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError(f"Response body is not JSON: {e}") from e

        records = parse_generation_response(payload)
        logger.info(f"Received {len(records)} raw records for position {target.id}")
        return records
