# -*- coding: utf-8 -*-
"""
Resynchronization module

Streams every record of a primary-store query through a converter into the
search index, optionally saving each indexed record back:

    >>> from core.sync import SynchronizationStream, SyncConfig
    >>> stream = SynchronizationStream(source, transformer, submitter, writer, SyncConfig())
    >>> summary = await stream.on("error", report).wait_closed()
"""

from core.sync.adapters import (
    ConverterTransformer,
    EsIndexSubmitter,
    MongoPersistenceWriter,
    MongoRecordSource,
)
from core.sync.config import SyncConfig
from core.sync.interfaces import (
    IndexSubmitter,
    PersistenceWriter,
    Record,
    RecordSource,
    Transformer,
)
from core.sync.outcome import OutcomeKind, SyncOutcome, SyncState, SyncSummary
from core.sync.retry import RetryConfig
from core.sync.stream import SynchronizationStream

__all__ = [
    'ConverterTransformer',
    'EsIndexSubmitter',
    'MongoPersistenceWriter',
    'MongoRecordSource',
    'SyncConfig',
    'IndexSubmitter',
    'PersistenceWriter',
    'Record',
    'RecordSource',
    'Transformer',
    'OutcomeKind',
    'SyncOutcome',
    'SyncState',
    'SyncSummary',
    'RetryConfig',
    'SynchronizationStream',
]
