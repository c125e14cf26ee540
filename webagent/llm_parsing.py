from __future__ import annotations

import json
import re
from typing import Any, Dict, List

from jsonschema.validators import Draft202012Validator


_FENCE_RE = re.compile(r"^```(?:json)?\s*([\s\S]*?)\s*```$", re.IGNORECASE)


def parse_json_object(text: str) -> Dict[str, Any]:
    """Parse a model reply that must be a single JSON object; raise ValueError otherwise.

    JSON mode replies are parsed as-is. The only leniency is a reply that
    wraps the object in one ```json fence, which is unwrapped first.
    """
    t = (text or "").strip()
    m = _FENCE_RE.match(t)
    if m:
        t = m.group(1).strip()
    if not t:
        raise ValueError("empty model reply")
    try:
        data = json.loads(t)
    except json.JSONDecodeError as exc:
        raise ValueError(f"model reply is not valid JSON: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise ValueError("model reply is not a JSON object")
    return data


def schema_errors(doc: Any, schema: Dict[str, Any]) -> List[Dict[str, str]]:
    """Return {"path", "message"} dicts for every schema violation in `doc`."""
    validator = Draft202012Validator(schema)
    errors: List[Dict[str, str]] = []
    for err in validator.iter_errors(doc):
        loc = ".".join(str(p) for p in err.path) or "(root)"
        errors.append({"path": loc, "message": str(err.message)})
    return errors


def classification_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "needsImages": {"type": "boolean"},
            "imageQuery": {"type": ["string", "null"]},
            "imageCount": {"type": ["integer", "null"], "minimum": 0},
            "explanation": {"type": "string"},
        },
        "required": ["needsImages"],
        # A positive decision must say what to search for
        "if": {"properties": {"needsImages": {"const": True}}, "required": ["needsImages"]},
        "then": {"required": ["imageQuery"], "properties": {"imageQuery": {"type": "string", "minLength": 1}}},
    }


_BODY_PROPS = {
    "content": {"type": "string"},
    "html": {"type": "string"},
    "code": {"type": "string"},
    "reason": {"type": ["string", "null"]},
}


def _change_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "path": {"type": ["string", "null"]},
            "action": {"type": "string"},
            **_BODY_PROPS,
        },
        "required": ["name", "action"],
    }


def _legacy_page_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {"name": {"type": "string"}, "path": {"type": "string"}, **_BODY_PROPS},
        "anyOf": [{"required": ["name"]}, {"required": ["path"]}],
    }


def webapp_reply_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "response": {"type": "string"},
            "changes": {"type": "array", "items": _change_schema()},
            "newPages": {"type": "array", "items": _legacy_page_schema()},
            "updatedPages": {"type": "array", "items": _legacy_page_schema()},
            "deletedPages": {"type": "array", "items": _legacy_page_schema()},
        },
        "required": ["response"],
    }


def single_file_reply_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "response": {"type": "string"},
            "changes": {"type": "array", "items": _change_schema()},
        },
        "required": ["response"],
    }


def webapp_changes(doc: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Ordered change dicts from either web app reply shape.

    The unified `changes` list wins when present. Otherwise the legacy
    lists are flattened as all newPages (create), then updatedPages
    (update), then deletedPages (delete).
    """
    if isinstance(doc.get("changes"), list):
        return [dict(c) for c in doc["changes"]]
    out: List[Dict[str, Any]] = []
    for key, action in (("newPages", "create"), ("updatedPages", "update"), ("deletedPages", "delete")):
        for page in doc.get(key) or []:
            item = dict(page)
            # The path addresses the page; name stays the display label
            item["name"] = item.get("name") or item.get("path") or ""
            item["action"] = action
            out.append(item)
    return out
