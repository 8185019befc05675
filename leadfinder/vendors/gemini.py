"""Client utilities for the Gemini generative search API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

from google import genai
from google.genai import types

from leadfinder.core.models import Location

logger = logging.getLogger(__name__)

MAPS_TOOL = "google_maps"
SEARCH_TOOL = "google_search"


class GenerationError(RuntimeError):
    """Raised when the generation API fails or returns no text."""


@dataclass(frozen=True)
class GenerationRequest:
    model: str
    prompt: str
    tools: Tuple[str, ...] = (MAPS_TOOL, SEARCH_TOOL)
    geo_bias: Optional[Location] = None


class TextGenerator(Protocol):
    async def generate(self, request: GenerationRequest) -> str:
        ...


def build_config(request: GenerationRequest) -> types.GenerateContentConfig:
    """Translate a GenerationRequest into the SDK config object."""
    tools = []
    for name in request.tools:
        if name == MAPS_TOOL:
            tools.append(types.Tool(google_maps=types.GoogleMaps()))
        elif name == SEARCH_TOOL:
            tools.append(types.Tool(google_search=types.GoogleSearch()))
        else:
            raise ValueError(f"Unsupported tool: {name}")

    tool_config = None
    if request.geo_bias is not None:
        tool_config = types.ToolConfig(
            retrieval_config=types.RetrievalConfig(
                lat_lng=types.LatLng(
                    latitude=request.geo_bias.latitude,
                    longitude=request.geo_bias.longitude,
                ),
            ),
        )
    return types.GenerateContentConfig(tools=tools, tool_config=tool_config)


class GeminiGenerator:
    """Async TextGenerator backed by the google-genai SDK.

    The SDK's async connection pool belongs to the event loop that first used
    it, so an owned client is rebuilt whenever ``generate`` runs on a new loop
    (each ``asyncio.run`` call starts one). An injected client is used as is.
    """

    def __init__(self, api_key: str, client: Optional[genai.Client] = None) -> None:
        if client is None and not api_key:
            raise GenerationError("GEMINI_API_KEY is required")
        self._api_key = api_key
        self._client = client
        self._owns_client = client is None
        self._client_loop: Optional[asyncio.AbstractEventLoop] = None

    def _get_client(self) -> genai.Client:
        if not self._owns_client:
            return self._client
        loop = asyncio.get_running_loop()
        if self._client is None or self._client_loop is not loop:
            logger.debug("Creating genai client for event loop %s", id(loop))
            self._client = genai.Client(api_key=self._api_key)
            self._client_loop = loop
        return self._client

    async def generate(self, request: GenerationRequest) -> str:
        logger.debug("generate_content model=%s geo_bias=%s", request.model, request.geo_bias)
        client = self._get_client()
        try:
            response = await client.aio.models.generate_content(
                model=request.model,
                contents=request.prompt,
                config=build_config(request),
            )
        except Exception as exc:  # noqa: BLE001
            raise GenerationError(f"generate_content failed: {exc}") from exc

        text = response.text
        if not text:
            raise GenerationError("generate_content returned no text")
        return text
