from elasticsearch.dsl import field as e_field
from core.oxm.es.doc_base import AliasDoc


class BookDoc(AliasDoc("books")):
    """
    Book Elasticsearch document

    meta.id is the MongoDB primary key, so re-indexing a book overwrites its document.
    """

    class CustomMeta:
        # Field used to populate meta.id
        id_source_field = "book_id"

    book_id = e_field.Keyword(required=True)

    # Full-text target of catalog searches
    title = e_field.Text(
        required=True,
        analyzer="standard",
        fields={"keyword": e_field.Keyword()},  # Exact match
    )
    author = e_field.Text(fields={"keyword": e_field.Keyword()})

    # Audit fields
    created_at = e_field.Date()
    updated_at = e_field.Date()
