# Voyage AI embedding client
# mflix_api/services/embedding_service.py

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from mflix_api.core.config import Settings
from mflix_api.core.errors import (
    EmbeddingAuthError,
    EmbeddingNotConfiguredError,
    EmbeddingServiceError,
)

logger = logging.getLogger(__name__)


class VoyageEmbeddingClient:
    """
    Turns a text query into a fixed-length vector with the Voyage AI REST API.

    Each call is attempted exactly once. A 401 from Voyage surfaces as
    EmbeddingAuthError; every other failure (transport, non-2xx, malformed body)
    surfaces as EmbeddingServiceError.
    """

    def __init__(self, settings: Settings, session: Optional[aiohttp.ClientSession] = None):
        self.settings = settings
        self._session = session
        self._owns_session = session is None

    @property
    def configured(self) -> bool:
        return self.settings.voyage_configured

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
            logger.info("Voyage AI client session closed.")

    def _build_payload(self, text: str) -> Dict[str, Any]:
        return {
            "input": [text],
            "model": self.settings.VOYAGE_MODEL,
            # the vector index is built for this dimension
            "output_dimension": self.settings.VOYAGE_OUTPUT_DIMENSION,
            "input_type": "query",
        }

    async def embed(self, text: str) -> List[float]:
        """
        Generates a query embedding.

        Args:
            text: The free-text query.

        Returns:
            The embedding vector.

        Raises:
            EmbeddingNotConfiguredError: If VOYAGE_API_KEY is not set.
            EmbeddingAuthError: If Voyage rejects the API key (HTTP 401).
            EmbeddingServiceError: On transport errors, other non-2xx statuses or a malformed body.
        """
        if not self.configured:
            raise EmbeddingNotConfiguredError()

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.VOYAGE_API_KEY.get_secret_value()}",
        }
        session = self._get_session()
        try:
            async with session.post(self.settings.VOYAGE_API_URL, json=self._build_payload(text), headers=headers) as response:
                if response.status == 401:
                    body = await response.text()
                    logger.warning("Voyage AI rejected the configured API key.")
                    raise EmbeddingAuthError(details=body[:200])
                if response.status >= 300:
                    body = await response.text()
                    logger.error(f"Voyage AI returned status {response.status}: {body[:200]}")
                    raise EmbeddingServiceError(
                        f"Voyage AI API returned status {response.status}",
                        details=body[:200],
                    )
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Voyage AI request failed: {e!r}", exc_info=True)
            raise EmbeddingServiceError(
                "Failed to reach the embedding service",
                details=str(e) or e.__class__.__name__,
            ) from e
        except ValueError as e:
            raise EmbeddingServiceError("Invalid response format from Voyage AI API", details=str(e)) from e

        return self._extract_embedding(data)

    @staticmethod
    def _extract_embedding(data: Any) -> List[float]:
        try:
            embedding = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError):
            embedding = None
        if not embedding:
            raise EmbeddingServiceError("Invalid response format from Voyage AI API")
        return [float(v) for v in embedding]
