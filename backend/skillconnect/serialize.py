# skillconnect/serialize.py
from typing import Any, Iterable, List, Optional

from bson import ObjectId
from bson.errors import InvalidId

from skillconnect.core.exceptions import NotFoundError

HIDDEN_FIELDS = {"password"}


def _convert(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: _convert(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_convert(v) for v in value]
    return value


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Make a Mongo document JSON friendly: `_id` becomes `id`, ObjectIds become strings."""
    if doc is None:
        return None
    out = {k: _convert(v) for k, v in doc.items() if k not in HIDDEN_FIELDS}
    if "_id" in out:
        out["id"] = out.pop("_id")
    return out


def serialize_list(docs: Iterable[dict]) -> List[dict]:
    return [serialize_doc(doc) for doc in docs]


def to_object_id(value, label: str = "Resource") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise NotFoundError(f"{label} not found")
