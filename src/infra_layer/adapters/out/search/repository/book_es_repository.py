"""
Book Elasticsearch repository
"""

from typing import List
from core.oxm.es.base_repository import BaseRepository
from infra_layer.adapters.out.search.elasticsearch.library.book import BookDoc
from core.observation.logger import get_logger

logger = get_logger(__name__)


class BookEsRepository(BaseRepository[BookDoc]):
    """Book Elasticsearch repository"""

    def __init__(self):
        super().__init__(BookDoc)

    async def search_titles(self, text: str, size: int = 10) -> List[str]:
        """
        Match books by title

        Args:
            text: Full-text query on the title field
            size: Maximum number of titles

        Returns:
            Matching titles ordered by score
        """
        response = await self.search(query={"match": {"title": text}}, size=size)
        hits = response.get('hits', {}).get('hits', [])
        return [hit.get('_source', {}).get('title') for hit in hits]
