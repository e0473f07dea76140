"""Best-effort enrichment hooks for memory items."""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..exceptions import EnrichmentUnavailable
from ..models.memory_models import Enrichment, MemoryItem
from .similarity import content_text

logger = logging.getLogger(__name__)

_FILE_PATH_RE = re.compile(r"([a-zA-Z0-9_-]+\.[a-zA-Z]{2,4})")
_SYMBOL_RE = re.compile(
    r"\b([A-Z][a-zA-Z0-9]*|[a-z][a-zA-Z0-9]*(?:Agent|Manager|Tool|Handler))\b"
)


def extract_code_references(text: str) -> List[str]:
    """
    Extract file names and code symbols mentioned in text.

    Args:
        text: Free text

    Returns:
        De-duplicated references; at most 5 symbols are kept
    """
    references = _FILE_PATH_RE.findall(text)
    references.extend(_SYMBOL_RE.findall(text)[:5])
    return list(dict.fromkeys(references))


class Enricher(ABC):
    """
    External enrichment capability.

    Implementations may block or fail; callers always treat the result as
    advisory and proceed without it on failure.
    """

    @abstractmethod
    async def enrich(self, item: MemoryItem) -> Tuple[Optional[Enrichment], bool]:
        """
        Produce advisory fields for a memory item.

        Args:
            item: Memory item about to be stored

        Returns:
            (enrichment, ok); ok is False when nothing could be produced

        Raises:
            EnrichmentUnavailable: If the backing service cannot be reached
        """
        pass


class StaticEnricher(Enricher):
    """Offline enricher deriving a signature from kind, tags and content."""

    def __init__(self, project_name: str = "research-swarm"):
        self.project_name = project_name

    async def enrich(self, item: MemoryItem) -> Tuple[Optional[Enrichment], bool]:
        tags = item.tags
        signature = " ".join([item.kind.value, *tags])
        return (
            Enrichment(
                semantic_signature=signature,
                project_context=(
                    f"project:{self.project_name} domain:{item.kind.value} "
                    f"tags:{','.join(tags)}"
                ),
                code_references=extract_code_references(content_text(item.content)),
            ),
            True,
        )


async def enrich_with_timeout(
    enricher: Enricher,
    item: MemoryItem,
    timeout: float,
) -> Optional[Enrichment]:
    """
    Run an enricher with a bounded timeout.

    Returns:
        The enrichment, or None when the enricher timed out, failed or
        declined
    """
    try:
        enrichment, ok = await asyncio.wait_for(enricher.enrich(item), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(
            f"Enrichment timed out after {timeout}s for {item.id}, storing without it"
        )
        return None
    except EnrichmentUnavailable as e:
        logger.warning(f"Enrichment unavailable for {item.id}, storing without it: {e}")
        return None
    except Exception as e:
        logger.warning(f"Enrichment failed for {item.id}, storing without it: {e}")
        return None

    if not ok or enrichment is None:
        logger.debug(f"Enricher declined {item.id}")
        return None
    return enrichment
