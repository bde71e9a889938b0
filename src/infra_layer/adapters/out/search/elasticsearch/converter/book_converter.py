"""
Book ES Converter

Converts raw MongoDB book documents to Elasticsearch BookDoc documents.
"""

from typing import Any, Mapping

from core.oxm.es.base_converter import BaseEsConverter
from core.observation.logger import get_logger
from infra_layer.adapters.out.search.elasticsearch.library.book import BookDoc

logger = get_logger(__name__)


class BookConverter(BaseEsConverter[BookDoc]):
    """
    Book ES Converter

    Books without a title cannot be searched and are rejected.
    """

    @classmethod
    def from_mongo(cls, source_doc: Mapping[str, Any]) -> BookDoc:
        """
        Convert a raw MongoDB book document to an ES BookDoc document

        Args:
            source_doc: Raw MongoDB book document

        Returns:
            BookDoc: Instance of ES document

        Raises:
            ValidationException: When `_id` or `title` is missing
        """
        cls.require_field(source_doc, "_id")
        title = cls.require_field(source_doc, "title")

        # MongoDB _id -> ES _id keeps re-indexing idempotent
        return BookDoc(
            book_id=cls.get_record_id(source_doc),
            title=str(title),
            author=source_doc.get("author"),
            created_at=source_doc.get("created_at"),
            updated_at=source_doc.get("updated_at"),
        )
