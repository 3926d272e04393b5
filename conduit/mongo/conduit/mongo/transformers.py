"""Conversions between JSON text and documents.

JSON is read and written as MongoDB Extended JSON, so values such as ``ObjectId`` and dates survive the round trip
(``{"_id": {"$oid": "..."}}``).
"""

from typing import Any, Iterable, Mapping

from bson import json_util

from conduit.core import check_not_none


def json_to_document(text: str | bytes) -> Any:
    """Parse Extended JSON into a document (or a list of documents for a JSON array)."""
    return json_util.loads(check_not_none(text, "text"))


def document_to_json(document: Mapping[str, Any]) -> str:
    """Render a document as relaxed Extended JSON."""
    return json_util.dumps(check_not_none(document, "document"), json_options=json_util.RELAXED_JSON_OPTIONS)


def documents_to_json(documents: Iterable[Mapping[str, Any]]) -> str:
    """Render documents as an Extended JSON array. Consumes the iterable."""
    check_not_none(documents, "documents")
    return json_util.dumps(list(documents), json_options=json_util.RELAXED_JSON_OPTIONS)
