import os
import typing
from typing import Type, Any, Dict

from elasticsearch import AsyncElasticsearch
from elasticsearch.dsl import MetaField, AsyncDocument


def get_index_ns() -> str:
    """Get index namespace"""
    return os.getenv("SELF_ES_INDEX_NS") or ""


class DocBase(AsyncDocument):
    """Elasticsearch document base class"""

    @classmethod
    def get_connection(cls) -> AsyncElasticsearch:
        """
        Get connection
        """
        return cls._get_connection()

    @classmethod
    def get_index_name(cls) -> str:
        """
        Get index name

        Raises:
            ValueError: If the document class does not have correct index configuration
        """
        if hasattr(cls, '_index') and hasattr(cls._index, '_name'):
            return cls._index._name
        raise ValueError(
            f"Document class {cls.__name__} does not have correct index configuration"
        )


class IdSourceDoc(DocBase):
    """Document class whose meta.id is taken from a declared source field"""

    class CustomMeta:
        # Field used to populate meta.id (e.g. the MongoDB primary key), not enabled if not set
        id_source_field: typing.Optional[str] = None

    def __init__(self, meta: Dict[str, Any] = None, **kwargs: Any):
        """Set meta.id strictly from CustomMeta.id_source_field, raise if it is missing"""
        custom_meta_class = getattr(self.__class__, 'CustomMeta', None)
        id_source_field = (
            getattr(custom_meta_class, 'id_source_field', None)
            if custom_meta_class
            else None
        )
        merged_meta: Dict[str, Any] = {} if meta is None else dict(meta)

        # Meta id given explicitly (ES loading scenario)
        given_meta_id = merged_meta.get("_id") or merged_meta.get("id")

        if given_meta_id not in (None, ""):
            if id_source_field and kwargs.get(id_source_field) not in (
                None,
                "",
                given_meta_id,
            ):
                raise ValueError("meta.id conflicts with value from id_source_field")
            merged_meta["id"] = given_meta_id
            merged_meta.pop("_id", None)
        elif id_source_field:
            source_value = kwargs.get(id_source_field)
            if source_value in (None, ""):
                raise ValueError(
                    f"{self.__class__.__name__} requires non-empty '{id_source_field}' to set meta.id"
                )
            merged_meta["id"] = source_value

        super().__init__(merged_meta or None, **kwargs)


def AliasDoc(
    doc_name: str, number_of_shards: int = 1, number_of_replicas: int = 0
) -> Type[IdSourceDoc]:
    """
    Create an ES document class bound to an index name

    The index name is suffixed with the SELF_ES_INDEX_NS namespace when set,
    so that test runs and environments never share an index.

    Args:
        doc_name: Document (index) name
        number_of_shards: Number of shards
        number_of_replicas: Number of replicas

    Returns:
        Document base class to inherit from
    """

    if get_index_ns():
        doc_name = f"{doc_name}-{get_index_ns()}"

    class GeneratedAliasDoc(IdSourceDoc):
        class Index:
            name = doc_name
            settings = {
                "number_of_shards": number_of_shards,
                "number_of_replicas": number_of_replicas,
                "refresh_interval": "1s",
            }

        class Meta:
            dynamic = MetaField("strict")

    return GeneratedAliasDoc
