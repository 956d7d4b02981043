"""Tests for the generative market-data provider"""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from salary_benchmark.provider import (
    GeminiMarketDataProvider,
    ProviderError,
    build_crawl_prompt,
    parse_generation_response,
)

RECORDS = [
    {
        "externalJobTitle": "QA工程师",
        "companyName": "SHEIN",
        "location": "广州",
        "minMonthlySalary": 12000,
        "maxMonthlySalary": 18000,
        "monthsPerYear": 13,
    }
]


def generation_payload(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_build_crawl_prompt(qa_position):
    """Test the prompt is rendered with the position's fields"""
    prompt = build_crawl_prompt(qa_position, ["广州", "深圳"])

    assert '"QA"' in prompt
    assert "质量工程师, QA工程师" in prompt
    assert "大货品质QA和新品首单质量跟踪" in prompt
    assert "SHEIN, 迈远" in prompt
    assert "广州, 深圳" in prompt
    assert '"externalJobTitle": "string"' in prompt


def test_parse_generation_response():
    """Test the JSON array is extracted from the first candidate"""
    assert parse_generation_response(generation_payload(json.dumps(RECORDS))) == RECORDS


def test_parse_generation_response_strips_code_fence():
    """Test markdown code fences around the JSON are tolerated"""
    text = "```json\n" + json.dumps(RECORDS) + "\n```"

    assert parse_generation_response(generation_payload(text)) == RECORDS


def test_parse_generation_response_drops_non_objects():
    """Test non-object array items are discarded"""
    text = json.dumps(RECORDS + ["noise", 3])

    assert parse_generation_response(generation_payload(text)) == RECORDS


def test_parse_generation_response_empty_text():
    """Test an empty text means no postings"""
    assert parse_generation_response(generation_payload("")) == []


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"candidates": []},
        {"candidates": [{"content": {}}]},
        generation_payload("not json"),
        generation_payload('{"externalJobTitle": "QA"}'),
    ],
)
def test_parse_generation_response_errors(payload):
    """Test malformed responses raise ProviderError"""
    with pytest.raises(ProviderError):
        parse_generation_response(payload)


@pytest.mark.asyncio
async def test_fetch_postings_without_api_key(qa_position):
    """Test a missing API key fails before any request"""
    provider = GeminiMarketDataProvider(api_key=None)

    with pytest.raises(ProviderError):
        await provider.fetch_postings(qa_position)


@pytest.mark.asyncio
async def test_fetch_postings_success(qa_position):
    """Test request shape and parsed records"""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=generation_payload(json.dumps(RECORDS)))

    async with mock_client(handler) as client:
        provider = GeminiMarketDataProvider(api_key="secret", model="gemini-test", client=client)
        records = await provider.fetch_postings(qa_position)

    assert records == RECORDS
    assert seen["url"].endswith("/models/gemini-test:generateContent")
    assert seen["key"] == "secret"
    assert seen["body"]["generationConfig"]["responseMimeType"] == "application/json"
    assert "QA" in seen["body"]["contents"][0]["parts"][0]["text"]


@pytest.mark.asyncio
async def test_fetch_postings_retries_rate_limit(qa_position):
    """Test 429 responses are retried with backoff"""
    responses = [
        httpx.Response(429),
        httpx.Response(200, json=generation_payload(json.dumps(RECORDS))),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    with patch("salary_benchmark.provider.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        async with mock_client(handler) as client:
            provider = GeminiMarketDataProvider(api_key="secret", client=client)
            records = await provider.fetch_postings(qa_position)

    assert records == RECORDS
    mock_sleep.assert_awaited_once_with(1.0)


@pytest.mark.asyncio
async def test_fetch_postings_gives_up_after_retries(qa_position):
    """Test persistent 503 responses raise ProviderError"""
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(503)

    with patch("salary_benchmark.provider.asyncio.sleep", new_callable=AsyncMock):
        async with mock_client(handler) as client:
            provider = GeminiMarketDataProvider(api_key="secret", client=client, max_retries=3)
            with pytest.raises(ProviderError):
                await provider.fetch_postings(qa_position)

    assert calls == 3


@pytest.mark.asyncio
async def test_fetch_postings_client_error_not_retried(qa_position):
    """Test a 4xx other than 429 fails immediately"""
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(403, json={"error": {"message": "forbidden"}})

    async with mock_client(handler) as client:
        provider = GeminiMarketDataProvider(api_key="secret", client=client)
        with pytest.raises(ProviderError):
            await provider.fetch_postings(qa_position)

    assert calls == 1


@pytest.mark.asyncio
async def test_fetch_postings_transport_error(qa_position):
    """Test transport errors are retried then surfaced as ProviderError"""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with patch("salary_benchmark.provider.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        async with mock_client(handler) as client:
            provider = GeminiMarketDataProvider(api_key="secret", client=client, max_retries=2)
            with pytest.raises(ProviderError):
                await provider.fetch_postings(qa_position)

    mock_sleep.assert_awaited_once()


@pytest.mark.asyncio
async def test_fetch_postings_non_json_body(qa_position):
    """Test a non-JSON response body raises ProviderError"""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    async with mock_client(handler) as client:
        provider = GeminiMarketDataProvider(api_key="secret", client=client)
        with pytest.raises(ProviderError):
            await provider.fetch_postings(qa_position)
