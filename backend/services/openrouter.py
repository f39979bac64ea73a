import json
import logging
from typing import AsyncIterator, Dict, List, Optional

import httpx

from services.errors import UpstreamFailure
from settings import settings

logger = logging.getLogger(__name__)


def build_headers(api_key: str) -> Dict[str, str]:
    clean_key = api_key.strip()
    auth_val = clean_key if clean_key.lower().startswith("bearer ") else f"Bearer {clean_key}"
    return {
        "Authorization": auth_val,
        "HTTP-Referer": "http://localhost:8000",
        "X-Title": "TechGear Support",
        "Content-Type": "application/json",
    }


def parse_delta(line: str) -> str:
    """Text carried by one SSE line of a chat completion stream, or '' for anything else."""
    if not line.startswith("data: ") or line == "data: [DONE]":
        return ""
    try:
        data = json.loads(line[6:])
    except json.JSONDecodeError:
        return ""
    choices = data.get("choices") or []
    if not choices:
        return ""
    return (choices[0].get("delta") or {}).get("content") or ""


async def stream_chat(
    messages: List[Dict[str, str]],
    model: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> AsyncIterator[str]:
    """
    Async generator yielding assistant text chunks from OpenRouter as they arrive.
    Raises UpstreamFailure when the provider answers with a non-200 status.
    """
    url = f"{settings.get_llm_base_url()}/chat/completions"
    payload = {
        "model": model or settings.get_llm_model(),
        "messages": messages,
        "stream": True,
    }
    headers = build_headers(settings.get_api_key())

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient()
    try:
        async with client.stream(
            "POST", url, headers=headers, json=payload, timeout=settings.get_llm_timeout()
        ) as response:
            if response.status_code != 200:
                error_msg = await response.aread()
                raise UpstreamFailure(
                    f"OpenRouter API Error {response.status_code}: {error_msg.decode(errors='replace')[:200]}"
                )

            async for line in response.aiter_lines():
                delta = parse_delta(line)
                if delta:
                    yield delta
    finally:
        if owns_client:
            await client.aclose()
