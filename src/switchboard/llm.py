"""OpenAI helpers that share a RequestPipeline's cache.

The client holds a pipeline instead of extending it, and only touches its
cache capability (``cache_lookup``/``cache_store``), so the generic REST
surface is not part of this class.
"""

import logging
from typing import Any, Union

from openai import AsyncOpenAI

from .cache import canonical_json
from .errors import LLMResponseError
from .pipeline import RequestPipeline
from .types import AuthConfig, WrapperConfig

logger = logging.getLogger("switchboard")

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-3.5-turbo"


class OpenAIClient:
    def __init__(
        self,
        api_key: str,
        *,
        organization: Union[str, None] = None,
        base_url: Union[str, None] = None,
        timeout: Union[int, None] = None,
        max_retries: Union[int, None] = None,
        cache_enabled: bool = False,
        cache_duration: Union[int, None] = None,
        client=None,
        pipeline: Union[RequestPipeline, None] = None,
    ):
        """Initialize an OpenAIClient.

        Args:
            api_key (str): OpenAI API key
            organization (str | None): optional organization id
            base_url (str | None): API root, defaults to https://api.openai.com/v1
            timeout (int | None): request timeout in milliseconds
            max_retries (int | None): retry budget for the SDK and the pipeline
            cache_enabled (bool): cache chat and image responses
            cache_duration (int | None): cache TTL in milliseconds
            client: pre-built AsyncOpenAI-compatible client (tests inject a fake here)
            pipeline (RequestPipeline | None): share an existing pipeline and its cache
        """
        options: dict[str, Any] = {
            "base_url": base_url or DEFAULT_BASE_URL,
            "cache_enabled": cache_enabled,
            "auth": AuthConfig(api_key=api_key),
        }
        if timeout is not None:
            options["timeout"] = timeout
        if max_retries is not None:
            options["retry_attempts"] = max_retries
        if cache_duration is not None:
            options["cache_duration"] = cache_duration
        self.pipeline = pipeline or RequestPipeline(WrapperConfig(**options))

        if client is None:
            sdk_options: dict[str, Any] = {
                "api_key": api_key,
                "organization": organization,
                "base_url": base_url,
            }
            if timeout is not None:
                sdk_options["timeout"] = timeout / 1000.0
            if max_retries is not None:
                sdk_options["max_retries"] = max_retries
            client = AsyncOpenAI(**sdk_options)
        self.client = client

    @property
    def cache_enabled(self) -> bool:
        return self.pipeline.config.cache_enabled

    async def _cached(self, prefix: str, params: dict[str, Any], call):
        key = f"{prefix}-{canonical_json(params)}"
        cached = self.pipeline.cache_lookup(key)
        if cached is not None:
            logger.debug(f"llm cache hit kind={prefix}")
            return cached
        response = await call(**params)
        self.pipeline.cache_store(key, response)
        return response

    async def chat(self, **params):
        """Create a chat completion; the response must carry ``choices``."""
        response = await self._cached("chat", params, self.client.chat.completions.create)
        if getattr(response, "choices", None) is None:
            raise LLMResponseError("Invalid response format from OpenAI chat completion")
        return response

    async def create_image(self, **params):
        return await self._cached("image", params, self.client.images.generate)

    async def transcribe(self, **params):
        return await self.client.audio.transcriptions.create(**params)

    async def create_speech(self, **params) -> bytes:
        response = await self.client.audio.speech.create(**params)
        return response.content

    async def analyze(self, text: str, instructions: str, model: str = DEFAULT_MODEL) -> str:
        response = await self.chat(
            messages=[
                {"role": "system", "content": instructions},
                {"role": "user", "content": text},
            ],
            model=model,
        )
        if not response.choices:
            return ""
        message = getattr(response.choices[0], "message", None)
        return getattr(message, "content", None) or ""

    async def summarize(self, text: str, max_length: Union[int, None] = None) -> str:
        if max_length:
            instructions = f"Summarize the following text in no more than {max_length} words:"
        else:
            instructions = "Summarize the following text:"
        return await self.analyze(text, instructions)

    async def translate(self, text: str, target_language: str) -> str:
        return await self.analyze(text, f"Translate the following text to {target_language}:")

    async def aclose(self):
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()
        await self.pipeline.aclose()
