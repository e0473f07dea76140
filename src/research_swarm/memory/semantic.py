"""Qdrant-backed semantic enrichment for memory items."""

import asyncio
import logging
import uuid
import warnings
from typing import Any, Callable, List, Optional, Tuple

from qdrant_client import AsyncQdrantClient
from qdrant_client.http.exceptions import UnexpectedResponse
from qdrant_client.models import Distance, PointStruct, VectorParams

from ..config.memory_config import MemoryConfig
from ..exceptions import EnrichmentUnavailable
from ..models.memory_models import Enrichment, MemoryItem
from .enrichment import Enricher, extract_code_references
from .similarity import content_text

logger = logging.getLogger(__name__)

NEIGHBOUR_LIMIT = 5
NEIGHBOUR_SCORE_THRESHOLD = 0.75


class QdrantEnricher(Enricher):
    """
    Enricher that indexes memory text in Qdrant.

    The semantic signature is the item's own kind and tags plus the tags of
    its nearest previously indexed neighbours, so related memories share
    signature words even when their content wording differs.
    """

    def __init__(
        self,
        config: MemoryConfig,
        embedding_function: Optional[Callable[[str], Any]] = None,
    ):
        """
        Initialize Qdrant enricher.

        Args:
            config: Memory configuration (Qdrant URL, collection, vector size)
            embedding_function: Sync or async function mapping text to a vector
        """
        self.config = config
        self.collection_name = config.semantic_collection_name
        self.embedding_function = embedding_function
        self._client: Optional[AsyncQdrantClient] = None
        self._qdrant_available: Optional[bool] = None  # None = not yet checked

    async def _get_client(self) -> Optional[AsyncQdrantClient]:
        """
        Get Qdrant client and ensure the collection exists.

        Returns:
            Async Qdrant client, or None if Qdrant is not available
        """
        if self._qdrant_available is False:
            return None

        if self._client is None:
            try:
                with warnings.catch_warnings():
                    warnings.filterwarnings(
                        "ignore", message="Api key is used with an insecure connection"
                    )
                    client = AsyncQdrantClient(
                        url=self.config.qdrant_url,
                        api_key=self.config.qdrant_api_key,
                    )

                collections = await client.get_collections()
                names = [c.name for c in collections.collections]
                if self.collection_name not in names:
                    await client.create_collection(
                        collection_name=self.collection_name,
                        vectors_config=VectorParams(
                            size=self.config.vector_size,
                            distance=Distance.COSINE,
                        ),
                    )
                    logger.debug(f"Created Qdrant collection: {self.collection_name}")
                self._client = client
                self._qdrant_available = True
            except (UnexpectedResponse, Exception) as e:
                logger.debug(f"Qdrant not available, enrichment disabled: {e}")
                self._qdrant_available = False
                return None

        return self._client

    async def _generate_embedding(self, text: str) -> List[float]:
        if asyncio.iscoroutinefunction(self.embedding_function):
            return await self.embedding_function(text)
        return self.embedding_function(text)

    async def enrich(self, item: MemoryItem) -> Tuple[Optional[Enrichment], bool]:
        if self.embedding_function is None:
            return None, False

        client = await self._get_client()
        if client is None:
            return None, False

        text = content_text(item.content)
        embedding = await self._generate_embedding(text)

        try:
            results = await client.query_points(
                collection_name=self.collection_name,
                query=embedding,
                limit=NEIGHBOUR_LIMIT,
                score_threshold=NEIGHBOUR_SCORE_THRESHOLD,
                with_payload=True,
            )
            points = results.points if hasattr(results, "points") else results

            words = [item.kind.value, *item.tags]
            for point in points:
                words.extend((point.payload or {}).get("tags", []))
            signature = " ".join(dict.fromkeys(words))

            await client.upsert(
                collection_name=self.collection_name,
                points=[
                    PointStruct(
                        id=str(uuid.uuid5(uuid.NAMESPACE_URL, item.id)),
                        vector=embedding,
                        payload={
                            "memory_id": item.id,
                            "kind": item.kind.value,
                            "session_id": item.session_id,
                            "tags": item.tags,
                        },
                    )
                ],
            )
        except (UnexpectedResponse, Exception) as e:
            raise EnrichmentUnavailable(f"Qdrant request failed: {e}") from e

        logger.debug(f"Enriched {item.id} from {len(points)} semantic neighbours")
        return (
            Enrichment(
                semantic_signature=signature,
                project_context=(
                    f"project:{self.config.project_name} domain:{item.kind.value} "
                    f"neighbours:{len(points)}"
                ),
                code_references=extract_code_references(text),
            ),
            True,
        )

    async def close(self) -> None:
        """Close the Qdrant client."""
        if self._client:
            await self._client.close()
            self._client = None
