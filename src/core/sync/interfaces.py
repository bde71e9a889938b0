"""
Collaborator interfaces of the synchronization stream.

The stream only depends on these contracts; MongoDB / Elasticsearch
implementations live in core.sync.adapters.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Mapping, Optional

Record = Mapping[str, Any]


class RecordSource(ABC):
    """
    Lazy, forward-only, single-pass sequence of records

    `open()` may be called once per source instance; a new run needs a new source.
    """

    @abstractmethod
    def open(self) -> AsyncIterator[Record]:
        """Open the cursor and return an async iterator over the records"""

    def record_id(self, record: Record) -> Optional[str]:
        """Identifier of a record, None when it has none"""
        record_id = record.get("_id") if isinstance(record, Mapping) else None
        return str(record_id) if record_id is not None else None


class Transformer(ABC):
    """Converts one record into an indexable document, pure function"""

    @abstractmethod
    def transform(self, record: Record) -> Any:
        """
        Raises:
            ValidationException: When the record cannot be indexed
        """


class IndexSubmitter(ABC):
    """Sends one document to the search engine"""

    @abstractmethod
    async def submit(self, document: Any, record_id: Optional[str] = None) -> None:
        """
        Raises:
            IndexingException: When the search engine rejects the document or cannot be reached
        """

    async def refresh(self) -> None:
        """Make submitted documents searchable, no-op by default"""


class PersistenceWriter(ABC):
    """Saves a record back to the primary store through its normal write path"""

    @abstractmethod
    async def persist(self, record: Record, document: Any) -> None:
        """
        Raises:
            PersistenceException: When the write fails
        """
