"""Extract the inline ``locations`` coordinate array from RVIS result pages.

The map page renders its markers from a JavaScript literal such as::

    let locations = [
        {lat: 25.04, lng: 121.51, label: '臺北市立聯合醫院'},
        ...
    ];

The literal is rewritten into JSON and decoded. When that fails (unexpected
JavaScript syntax), each ``{...}`` object is scanned for ``lat``, ``lng`` and
``label`` on its own and objects without both coordinates are dropped.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

from rvis_crawler.models import ScriptLocation

logger = logging.getLogger(__name__)

LOCATIONS_ASSIGNMENT = re.compile(
    r"\b(?:let|var|const)\s+locations\s*=\s*(\[.*?\])\s*;",
    re.DOTALL,
)

# Strings first so that keys, quotes and commas inside them are left alone.
_JS_TOKEN = re.compile(
    r'"(?:[^"\\]|\\.)*"'
    r"|'(?:[^'\\]|\\.)*'"
    r"|(?<=[{,])(\s*)([A-Za-z_$][\w$]*)(\s*:)"
    r"|,(?=\s*[}\]])",
    re.DOTALL,
)
_SINGLE_QUOTED_ESCAPE = re.compile(r'\\(.)|"', re.DOTALL)

_OBJECT = re.compile(r"\{([^}]+)\}")
_NUMBER = r"(-?(?:\d+\.?\d*|\.\d+))"
_LAT = re.compile(r"""(?<![\w$])["']?lat["']?\s*:\s*["']?""" + _NUMBER)
_LNG = re.compile(r"""(?<![\w$])["']?lng["']?\s*:\s*["']?""" + _NUMBER)
_LABEL = re.compile(r"""(?<![\w$])["']?label["']?\s*:\s*(?:"([^"]*)"|'([^']*)')""")


def extract_script_locations(html: str) -> List[ScriptLocation]:
    """Return the page's script coordinates in source order (never raises)."""
    match = LOCATIONS_ASSIGNMENT.search(html or "")
    if not match:
        logger.debug("No locations array found in page script")
        return []

    literal = match.group(1)
    decoded = _decode_literal(literal)
    if decoded is None:
        logger.warning("locations array is not valid after normalisation; falling back to manual parsing")
        return _parse_objects_manually(literal[1:-1])

    return [_to_location(entry) for entry in decoded if isinstance(entry, dict)]


def normalize_js_literal(literal: str) -> str:
    """Rewrite a JavaScript array/object literal into JSON text.

    Bare keys are quoted, single-quoted strings become double-quoted and
    trailing commas before ``}`` or ``]`` are removed.
    """
    return _JS_TOKEN.sub(_normalize_token, literal)


def _normalize_token(match: re.Match) -> str:
    text = match.group(0)
    if match.group(2) is not None:
        return f'{match.group(1)}"{match.group(2)}"{match.group(3)}'
    if text.startswith("'"):
        return '"' + _SINGLE_QUOTED_ESCAPE.sub(_requote_escape, text[1:-1]) + '"'
    if text == ",":
        return ""
    return text


def _requote_escape(match: re.Match) -> str:
    escaped = match.group(1)
    if escaped is None:
        return '\\"'
    if escaped == "'":
        return "'"
    return "\\" + escaped


def _decode_literal(literal: str) -> Optional[List[Any]]:
    try:
        decoded = json.loads(normalize_js_literal(literal), strict=False)
    except ValueError as exc:
        logger.debug("JSON decode of locations array failed: %s", exc)
        return None
    if not isinstance(decoded, list):
        return None
    return decoded


def _to_location(entry: Dict[str, Any]) -> ScriptLocation:
    label = entry.get("label")
    if label is None:
        label = entry.get("name")
    return ScriptLocation(
        label=None if label is None else str(label),
        lat=_safe_float(entry.get("lat")),
        lng=_safe_float(entry.get("lng")),
    )


def _parse_objects_manually(array_body: str) -> List[ScriptLocation]:
    locations: List[ScriptLocation] = []
    for object_match in _OBJECT.finditer(array_body):
        content = object_match.group(1)
        lat = _first_float(_LAT, content)
        lng = _first_float(_LNG, content)
        if lat is None or lng is None:
            logger.debug("Discarding script object without coordinates: %s", content[:80])
            continue

        label = None
        label_match = _LABEL.search(content)
        if label_match:
            raw_label = label_match.group(1) if label_match.group(1) is not None else label_match.group(2)
            label = raw_label.strip()

        locations.append(ScriptLocation(label=label, lat=lat, lng=lng))
    return locations


def _first_float(pattern: re.Pattern, text: str) -> Optional[float]:
    match = pattern.search(text)
    if not match:
        return None
    return _safe_float(match.group(1))


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None or isinstance(value, bool):
            return None
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number
