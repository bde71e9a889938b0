"""
Elasticsearch document converter base class

Converts raw MongoDB documents into Elasticsearch documents. Converters are pure:
they read the raw record and build a document, nothing else. Missing required
values are reported as ValidationException so that a resync can skip the record.
"""

from abc import ABC, abstractmethod
from typing import TypeVar, Generic, Type, Any, Mapping, Optional, get_args, get_origin

from core.constants.exceptions import ValidationException
from core.oxm.es.doc_base import DocBase
from core.observation.logger import get_logger

logger = get_logger(__name__)

# Generic type variable - only constrains ES document type
EsDocType = TypeVar('EsDocType', bound=DocBase)


class BaseEsConverter(ABC, Generic[EsDocType]):
    """
    Elasticsearch document converter base class

    Features:
    - Unified conversion interface (class methods)
    - Automatically retrieves ES document type from generics
    - Required-field helpers raising ValidationException
    """

    @classmethod
    def get_es_model(cls) -> Type[EsDocType]:
        """
        Get the ES document model type from generic information

        Returns:
            Type[EsDocType]: ES document model class
        """
        if hasattr(cls, '__orig_bases__'):
            for base in cls.__orig_bases__:
                if get_origin(base) is BaseEsConverter:
                    args = get_args(base)
                    if args:
                        return args[0]

        raise ValueError(
            f"Cannot obtain ES document type from generic information of {cls.__name__}"
        )

    @staticmethod
    def get_record_id(source_doc: Mapping[str, Any]) -> Optional[str]:
        """String form of the record primary key, None when absent"""
        record_id = source_doc.get("_id") if source_doc is not None else None
        return str(record_id) if record_id is not None else None

    @classmethod
    def require_field(cls, source_doc: Mapping[str, Any], field: str) -> Any:
        """
        Get a required field value

        Raises:
            ValidationException: If the value is missing, None or a blank string
        """
        value = source_doc.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationException(
                "required value is missing",
                record_id=cls.get_record_id(source_doc),
                field=field,
            )
        return value

    @classmethod
    @abstractmethod
    def from_mongo(cls, source_doc: Mapping[str, Any]) -> EsDocType:
        """
        Convert a raw MongoDB document to an Elasticsearch document

        Args:
            source_doc: Raw MongoDB document

        Returns:
            EsDocType: Elasticsearch document instance

        Raises:
            ValidationException: When the document cannot be indexed
        """
        raise NotImplementedError("Subclasses must implement the from_mongo method")
