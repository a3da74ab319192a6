"""
Thin Cloudflare Workers AI client shared by sentiment, advice and summary services.

Same account/token as the remote ASR (CLOUDFLARE_ACCOUNT_ID / CLOUDFLARE_API_TOKEN).
Errors propagate; each service decides its own fallback value.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any

import httpx

from meeting_copilot.config import get_settings

logger = logging.getLogger(__name__)


class WorkersAIClient:
    def __init__(
        self,
        account_id: str | None = None,
        api_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._account_id = (account_id if account_id is not None else settings.CLOUDFLARE_ACCOUNT_ID).strip()
        self._token = (api_token if api_token is not None else settings.CLOUDFLARE_API_TOKEN).strip()
        self._timeout = timeout if timeout is not None else settings.LLM_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._account_id and self._token)

    async def run(self, model: str, payload: dict[str, Any]) -> Any:
        """POST to /ai/run/{model}; returns the "result" member (or the whole body)."""
        if not self.configured:
            raise ValueError("CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN are required")
        url = f"https://api.cloudflare.com/client/v4/accounts/{self._account_id}/ai/run/{model}"
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {self._token}", "Content-Type": "application/json"},
            )
            resp.raise_for_status()
            data = resp.json()
        if isinstance(data, dict) and "result" in data:
            return data["result"]
        return data

    async def chat(
        self,
        model: str,
        system: str,
        user: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Text generation; returns the stripped response text."""
        result = await self.run(
            model,
            {
                "messages": [
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
        )
        if isinstance(result, dict):
            content = result.get("response", "") or ""
        elif isinstance(result, str):
            content = result
        else:
            content = ""
        return (content or "").strip()


def extract_json_object(raw: str) -> dict[str, Any]:
    """Parse a JSON object from model output (may be wrapped in a markdown code block)."""
    raw = raw.strip()
    if raw.startswith("```"):
        raw = re.sub(r"^```(?:json)?\s*", "", raw)
        raw = re.sub(r"\s*```\s*$", "", raw)
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise ValueError("Expected a JSON object")
    return parsed
