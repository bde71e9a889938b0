"""Elasticsearch resynchronization service

Rebuilds a search index from its MongoDB collection: every record matching the
query is converted, indexed and (optionally) saved back through the model's
write path so that pre-save hooks run again.
"""

from typing import Any, Dict, Mapping, Optional, Type, Union

from core.observation.logger import get_logger
from core.oxm.es.base_converter import BaseEsConverter
from core.oxm.es.base_repository import BaseRepository as EsBaseRepository
from core.oxm.mongo.base_repository import BaseRepository as MongoBaseRepository
from core.sync import (
    ConverterTransformer,
    EsIndexSubmitter,
    MongoPersistenceWriter,
    MongoRecordSource,
    SyncConfig,
    SynchronizationStream,
)
from infra_layer.adapters.out.persistence.repository.book_raw_repository import (
    BookRawRepository,
)
from infra_layer.adapters.out.search.elasticsearch.converter.book_converter import (
    BookConverter,
)
from infra_layer.adapters.out.search.repository.book_es_repository import (
    BookEsRepository,
)

logger = get_logger(__name__)


class EsResyncService:
    """Resynchronization of one MongoDB collection into one Elasticsearch index"""

    def __init__(
        self,
        mongo_repo: MongoBaseRepository,
        es_repo: EsBaseRepository,
        converter: Type[BaseEsConverter],
        sort_field: Optional[str] = None,
    ):
        """Initialize resync service

        Args:
            mongo_repo: Repository of the source collection
            es_repo: Repository of the target index
            converter: Converter from raw MongoDB documents to ES documents
            sort_field: Optional cursor sort field, natural order if None
        """
        self.mongo_repo = mongo_repo
        self.es_repo = es_repo
        self.converter = converter
        self.sort_field = sort_field

    def synchronize(
        self,
        query_filter: Optional[Dict[str, Any]] = None,
        config: Union[SyncConfig, Mapping[str, Any], None] = None,
    ) -> SynchronizationStream:
        """
        Create a synchronization stream over the records matching `query_filter`

        The stream is not started: attach listeners, then `start()` /
        `wait_closed()`, or iterate it with `async for`.

        Args:
            query_filter: MongoDB filter, all records if None or empty
            config: SyncConfig or mapping of overrides, e.g. {"save_on_synchronize": False}
        """
        sync_config = SyncConfig.coerce(config)
        source = MongoRecordSource(
            self.mongo_repo,
            query_filter=query_filter,
            batch_size=sync_config.batch_size,
            sort_field=self.sort_field,
        )
        submitter = EsIndexSubmitter(
            self.es_repo,
            retry_config=sync_config.retry_config,
            timeout=sync_config.operation_timeout,
        )
        writer = (
            MongoPersistenceWriter(self.mongo_repo, timeout=sync_config.operation_timeout)
            if sync_config.save_on_synchronize
            else None
        )

        logger.info(
            "🔄 Preparing resync %s -> %s, filter=%s",
            self.mongo_repo.model_name,
            self.es_repo.get_index_name(),
            query_filter or {},
        )
        return SynchronizationStream(
            source,
            ConverterTransformer(self.converter),
            submitter,
            writer,
            sync_config,
            name=self.es_repo.model_name,
        )


class BookResyncService(EsResyncService):
    """Resynchronization of the books collection"""

    def __init__(
        self,
        mongo_repo: Optional[BookRawRepository] = None,
        es_repo: Optional[BookEsRepository] = None,
    ):
        super().__init__(
            mongo_repo or BookRawRepository(),
            es_repo or BookEsRepository(),
            BookConverter,
        )
