"""JSON and body encoding utilities."""
import json
from typing import Iterable, Mapping
from urllib.parse import urlencode


def json_compact(payload: object) -> str:
    """Serialize object to compact JSON string (request bodies, fingerprints)."""
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def form_encode(fields: Mapping[str, object] | Iterable[tuple[str, object]]) -> str:
    """Form-encode fields, preserving their order."""
    return urlencode(list(fields.items()) if isinstance(fields, Mapping) else list(fields))


def parse_body_text(text: str) -> object:
    """Parse a response body: JSON when possible, raw text otherwise, None if empty."""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text
