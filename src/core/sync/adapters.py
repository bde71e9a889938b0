"""
MongoDB / Elasticsearch implementations of the synchronization collaborators.

Each adapter translates driver errors into the pipeline's exception taxonomy:
pymongo errors become SourceException (fatal) or PersistenceException (per
record), Elasticsearch errors become IndexingException with a retryable flag.
"""

import asyncio
from typing import Any, AsyncIterator, Dict, Optional, Type

from elastic_transport import TransportError
from elasticsearch import ApiError
from elasticsearch.dsl.exceptions import ValidationException as DslValidationException
from pymongo.errors import PyMongoError

from core.constants.exceptions import (
    IndexingException,
    PersistenceException,
    SourceException,
    ValidationException,
)
from core.observation.logger import get_logger
from core.oxm.es.base_converter import BaseEsConverter
from core.oxm.es.base_repository import BaseRepository as EsBaseRepository
from core.oxm.mongo.base_repository import BaseRepository as MongoBaseRepository
from core.sync.interfaces import (
    IndexSubmitter,
    PersistenceWriter,
    Record,
    RecordSource,
    Transformer,
)
from core.sync.retry import RetryConfig, call_with_retry

logger = get_logger(__name__)


class MongoRecordSource(RecordSource):
    """Single-pass record source over a MongoDB collection cursor"""

    def __init__(
        self,
        repository: MongoBaseRepository,
        query_filter: Optional[Dict[str, Any]] = None,
        batch_size: int = 500,
        sort_field: Optional[str] = None,
    ):
        self.repository = repository
        self.query_filter = dict(query_filter or {})
        self.batch_size = batch_size
        self.sort_field = sort_field
        self._opened = False

    def open(self) -> AsyncIterator[Record]:
        if self._opened:
            raise SourceException(
                f"cursor over {self.repository.model_name} was already opened"
            )
        self._opened = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Record]:
        stream = self.repository.stream_raw(
            query_filter=self.query_filter,
            batch_size=self.batch_size,
            sort_field=self.sort_field,
        )
        try:
            async for raw in stream:
                yield raw
        except PyMongoError as e:
            raise SourceException(
                str(e),
                details={"model": self.repository.model_name},
                original_exception=e,
            ) from e
        finally:
            await stream.aclose()


class ConverterTransformer(Transformer):
    """Transformer delegating to a BaseEsConverter"""

    def __init__(self, converter: Type[BaseEsConverter]):
        self.converter = converter

    def transform(self, record: Record) -> Any:
        try:
            return self.converter.from_mongo(record)
        except ValidationException:
            raise
        except Exception as e:
            raise ValidationException(
                f"conversion failed: {e}",
                record_id=self.converter.get_record_id(record),
                original_exception=e,
            ) from e


def _is_retryable(error: Exception) -> bool:
    return isinstance(error, IndexingException) and error.retryable


class EsIndexSubmitter(IndexSubmitter):
    """Index submitter over an Elasticsearch repository, with timeout and retries"""

    def __init__(
        self,
        repository: EsBaseRepository,
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 30.0,
    ):
        self.repository = repository
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout

    async def _attempt(self, document: Any, record_id: Optional[str]) -> None:
        try:
            await asyncio.wait_for(self.repository.index(document), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise IndexingException(
                f"indexing timed out after {self.timeout}s",
                record_id=record_id,
                retryable=True,
                original_exception=e,
            ) from e
        except DslValidationException as e:
            raise IndexingException(
                f"document rejected by mapping: {e}",
                record_id=record_id,
                retryable=False,
                original_exception=e,
            ) from e
        except ApiError as e:
            status = e.status_code
            raise IndexingException(
                str(e.message),
                record_id=record_id,
                retryable=status == 429 or status >= 500,
                status_code=status,
                original_exception=e,
            ) from e
        except TransportError as e:
            raise IndexingException(
                f"transport failure: {e}",
                record_id=record_id,
                retryable=True,
                original_exception=e,
            ) from e

    async def submit(self, document: Any, record_id: Optional[str] = None) -> None:
        await call_with_retry(
            lambda: self._attempt(document, record_id),
            self.retry_config,
            is_retryable=_is_retryable,
            description=f"Indexing {self.repository.model_name} {record_id}",
        )

    async def refresh(self) -> None:
        await self.repository.refresh_index()


class MongoPersistenceWriter(PersistenceWriter):
    """Saves records back through the Beanie model's save() path"""

    def __init__(self, repository: MongoBaseRepository, timeout: float = 30.0):
        self.repository = repository
        self.timeout = timeout

    async def persist(self, record: Record, document: Any) -> None:
        record_id = str(record["_id"]) if record.get("_id") is not None else None
        try:
            await asyncio.wait_for(
                self.repository.save_raw(record), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise PersistenceException(
                f"save timed out after {self.timeout}s",
                record_id=record_id,
                original_exception=e,
            ) from e
        except Exception as e:
            raise PersistenceException(
                str(e), record_id=record_id, original_exception=e
            ) from e
