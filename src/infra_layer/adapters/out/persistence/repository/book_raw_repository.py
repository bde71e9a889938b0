from typing import List, Optional
from core.oxm.mongo.base_repository import BaseRepository
from infra_layer.adapters.out.persistence.document.library.book import Book
from core.observation.logger import get_logger

logger = get_logger(__name__)


class BookRawRepository(BaseRepository[Book]):
    """
    Book raw data repository

    Provides catalog seeding and the raw cursor used by the books resync.
    """

    def __init__(self):
        super().__init__(Book)

    async def insert_titles(self, titles: List[Optional[str]]) -> int:
        """
        Insert one raw book per title, bypassing validation

        A None title inserts an empty document, which the resync reports as invalid.

        Returns:
            Number of inserted documents
        """
        raw_documents = [{"title": title} if title is not None else {} for title in titles]
        return await self.insert_raw_many(raw_documents)
