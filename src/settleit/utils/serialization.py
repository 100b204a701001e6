"""JSON snapshots of domain entities for events and change journals."""

import dataclasses
import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value


def to_payload(entity: Any) -> dict[str, Any]:
    """Return a JSON-ready dict of a dataclass entity."""
    return {field.name: _plain(getattr(entity, field.name)) for field in dataclasses.fields(entity)}


def payload_hash(entity: Any) -> str:
    """Return the md5 hex digest of the entity's canonical JSON snapshot."""
    encoded = json.dumps(to_payload(entity), sort_keys=True).encode("utf-8")
    return hashlib.md5(encoded).hexdigest()
