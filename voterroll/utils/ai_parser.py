import json
import re
import logging
from typing import List, Dict, Any, Optional

from ..exceptions import ModelResponseError

logger = logging.getLogger("voterroll.ai_parser")

_FENCE_RE = re.compile(r'```(?:json)?\s*([\s\S]*?)\s*```', re.IGNORECASE)


def parse_ai_response(response_text: str, model: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Parse AI response text into a list of raw voter dictionaries.

    Accepts three shapes, possibly wrapped in prose or markdown fencing:
    1. A JSON array of objects
    2. A {"voters": [...]} wrapper
    3. A single JSON object

    Args:
        response_text: Raw text response from AI
        model: Model name, attached to the error for diagnostics

    Returns:
        List of dictionaries containing voter data (may be empty)

    Raises:
        ModelResponseError: If no JSON payload can be recovered
    """
    if not response_text or not response_text.strip():
        raise ModelResponseError("Empty response from model", model=model)

    body = _strip_fence(response_text)

    # An object payload may hold arrays of its own (photo_box_2d), so it
    # must not be mistaken for an array payload
    if body.lstrip().startswith("{"):
        records = _parse_object(body)
        if records is None:
            records = _parse_array(response_text)
    else:
        records = _parse_array(response_text)
        if records is None:
            records = _parse_object(body)

    if records is not None:
        return records

    raise ModelResponseError(
        "Could not parse JSON from model response",
        model=model,
        response_text=response_text,
    )


def _strip_fence(text: str) -> str:
    match = _FENCE_RE.search(text)
    return match.group(1) if match else text.strip()


def _load_between(text: str, open_char: str, close_char: str) -> Any:
    """json.loads the substring from the first open_char to the last close_char."""
    start = text.find(open_char)
    end = text.rfind(close_char)
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        logger.debug(f"JSON decode failed between {open_char}{close_char}: {e}")
        return None


def _parse_array(text: str) -> Optional[List[Dict[str, Any]]]:
    """Records from the outermost [...], or None when it holds no objects."""
    data = _load_between(text, "[", "]")
    if not isinstance(data, list):
        return None
    if data and not any(isinstance(item, dict) for item in data):
        return None
    return _records_from_list(data)


def _parse_object(text: str) -> Optional[List[Dict[str, Any]]]:
    data = _load_between(text, "{", "}")
    if not isinstance(data, dict):
        return None
    return _records_from_object(data)


def _records_from_list(items: List[Any]) -> List[Dict[str, Any]]:
    records = [item for item in items if isinstance(item, dict)]
    if len(records) != len(items):
        logger.debug(f"Dropped {len(items) - len(records)} non-object array items")
    return records


def _records_from_object(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    voters = data.get("voters")
    if isinstance(voters, list):
        return _records_from_list(voters)
    return [data]
