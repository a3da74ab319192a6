"""
CloudflareWhisperEngine: remote Whisper via Cloudflare Workers AI.

Sends the WAV container (base64) with a language hint and an initial prompt that
biases vocabulary toward meeting speech. Raises on HTTP errors so the orchestrator
can log and degrade to "".
"""
from __future__ import annotations

import base64

import httpx

from meeting_copilot.asr.base import ASREngine
from meeting_copilot.config import get_settings


def _extract_text(data: dict) -> str:
    """Workers AI returns { "result": { "text": ... } } or the result object directly."""
    result = data.get("result", data)
    if isinstance(result, dict):
        text = result.get("text", result.get("transcript", ""))
    elif isinstance(result, str):
        text = result
    else:
        text = ""
    return (text or "").strip()


class CloudflareWhisperEngine(ASREngine):
    """Remote Whisper. transport is for tests (httpx.MockTransport)."""

    name = "cloudflare"

    def __init__(
        self,
        account_id: str | None = None,
        api_token: str | None = None,
        model: str | None = None,
        language: str | None = None,
        prompt: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._account_id = (account_id if account_id is not None else settings.CLOUDFLARE_ACCOUNT_ID).strip()
        self._token = (api_token if api_token is not None else settings.CLOUDFLARE_API_TOKEN).strip()
        self._model = model or settings.REMOTE_WHISPER_MODEL
        self._language = language if language is not None else settings.TRANSCRIBE_LANGUAGE
        self._prompt = prompt if prompt is not None else settings.TRANSCRIBE_PROMPT
        self._timeout = timeout if timeout is not None else settings.TRANSCRIBE_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def available(self) -> bool:
        return bool(self._account_id and self._token)

    async def transcribe(self, pcm: bytes, wav: bytes) -> str:
        if not self.available:
            return ""
        url = f"https://api.cloudflare.com/client/v4/accounts/{self._account_id}/ai/run/{self._model}"
        body: dict = {"audio": base64.b64encode(wav).decode("ascii")}
        if self._language:
            body["language"] = self._language
        if self._prompt:
            body["initial_prompt"] = self._prompt

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(
                url,
                json=body,
                headers={"Authorization": f"Bearer {self._token}"},
            )
            resp.raise_for_status()
            data = resp.json()
        return _extract_text(data)
