# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Text-completion backends that stream raw model output.
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, Protocol

import httpx

from .errors import ModelBackendError
from .models import GenerationSettings

logger = logging.getLogger(__name__)


class TextCompletionModel(Protocol):
    """Given a prompt and settings, produce a lazy, cancellable stream of text fragments."""

    def infer(self, prompt: str, settings: GenerationSettings) -> AsyncIterator[str]:
        ...


def _status_error_message(status_code: int) -> str:
    if status_code == 401:
        return "Authentication failed"
    elif status_code == 403:
        return "Access forbidden"
    elif status_code == 429:
        return "Rate limit exceeded"
    elif status_code >= 500:
        return "Upstream service temporarily unavailable"
    return "Request processing failed"


class HttpCompletionModel:
    """
    Streams from an OpenAI-compatible `/completions` endpoint
    (llama.cpp server, vLLM, text-generation-webui).

    Closing the returned iterator closes the HTTP stream, which tells the
    server to stop generating.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        api_key: str = "",
        model: str = "",
        timeout: int = 180,
    ):
        self.http_client = http_client
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def build_request_body(self, prompt: str, settings: GenerationSettings) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "prompt": prompt,
            "max_tokens": settings.max_tokens,
            "temperature": settings.temperature,
            "top_p": settings.top_p,
            "stream": True,
        }
        if self.model:
            body["model"] = self.model
        if settings.stop_sequences:
            body["stop"] = sorted(settings.stop_sequences)
        return body

    def build_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def infer(self, prompt: str, settings: GenerationSettings) -> AsyncIterator[str]:
        url = f"{self.base_url}/completions"
        body = self.build_request_body(prompt, settings)
        logger.debug(f"🔧 Starting completion stream from: {url}, prompt length: {len(prompt)}")

        try:
            async with self.http_client.stream(
                "POST", url, json=body, headers=self.build_headers(), timeout=self.timeout
            ) as response:
                if response.status_code != 200:
                    error_content = await response.aread()
                    logger.error(f"❌ Upstream completion error: status_code={response.status_code}")
                    logger.error(f"❌ Upstream error details: {error_content.decode('utf-8', errors='ignore')[:500]}")
                    raise ModelBackendError(_status_error_message(response.status_code), response.status_code)

                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    line_data = line[len("data:"):].strip()
                    if not line_data:
                        continue
                    if line_data == "[DONE]":
                        break

                    try:
                        chunk_json = json.loads(line_data)
                    except json.JSONDecodeError:
                        logger.debug(f"🔧 Skipping undecodable stream line: {line_data[:100]}")
                        continue

                    if chunk_json.get("error"):
                        logger.error(f"❌ Upstream reported error mid-stream: {chunk_json['error']}")
                        raise ModelBackendError("Upstream reported an error during generation")

                    choices = chunk_json.get("choices") or [{}]
                    text = choices[0].get("text") or ""
                    if text:
                        yield text

        except httpx.RemoteProtocolError:
            logger.debug("🔧 Upstream closed connection prematurely, ending completion stream")
            return

        except httpx.RequestError as e:
            logger.error(f"❌ Failed to connect to upstream service: {e}")
            logger.error(f"❌ Error type: {type(e).__name__}")
            raise ModelBackendError("Failed to connect to upstream service") from e
