"""Format adapter for BMS (XML markup) estimate documents.

The adapter only turns bytes or text into a nested mapping; it does not
interpret any estimate fields.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from estimate_import.core.errors import EmptyInputError, MalformedDocumentError
from estimate_import.ingestion.extractors import TEXT_KEY
from estimate_import.ingestion.tracker import UnknownElementTracker
from estimate_import.ingestion.vendors import MARKUP_ROOTS, UNKNOWN_DOCUMENT_TYPE

logger = logging.getLogger(__name__)

ATTRIBUTE_PREFIX = "@_"
MAX_DEPTH = 200

RawMarkup = Union[str, bytes, bytearray, None]


@dataclass(frozen=True)
class MarkupDocument:
    """Parsed XML tree with the root variant already identified."""

    root_name: str
    document_type: str
    root: Dict[str, Any]


def _strip_namespace(tag: str) -> str:
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    if ":" in tag:
        return tag.split(":", 1)[1]
    return tag


def _element_to_node(element: ET.Element) -> Any:
    """Convert an element into a string leaf or a nested mapping.

    Repeated child names are collected into lists in document order. The
    tree is walked with an explicit stack; documents nested deeper than
    ``MAX_DEPTH`` raise :class:`MalformedDocumentError`.
    """

    converted: Dict[int, Any] = {}
    stack: List[Tuple[ET.Element, int, bool]] = [(element, 1, False)]
    while stack:
        current, depth, expanded = stack.pop()
        # comments and processing instructions have non-string tags
        children = [child for child in current if isinstance(child.tag, str)]
        if not expanded:
            if depth > MAX_DEPTH:
                raise MalformedDocumentError(f"BMS document is nested deeper than {MAX_DEPTH} elements")
            stack.append((current, depth, True))
            stack.extend((child, depth + 1, False) for child in reversed(children))
            continue

        node: Dict[str, Any] = {}
        for name, value in current.attrib.items():
            node[f"{ATTRIBUTE_PREFIX}{_strip_namespace(name)}"] = value.strip()

        for child in children:
            key = _strip_namespace(child.tag)
            value = converted.pop(id(child))
            if key in node:
                existing = node[key]
                if isinstance(existing, list):
                    existing.append(value)
                else:
                    node[key] = [existing, value]
            else:
                node[key] = value

        text = (current.text or "").strip()
        if not node:
            converted[id(current)] = text
            continue
        if text:
            node[TEXT_KEY] = text
        converted[id(current)] = node
    return converted[id(element)]


def _is_blank(raw: RawMarkup) -> bool:
    if raw is None:
        return True
    if isinstance(raw, (bytes, bytearray)):
        return not bytes(raw).strip(b" \t\r\n\xef\xbb\xbf")
    return not raw.strip().lstrip("\ufeff").strip()


def parse(raw: RawMarkup, tracker: Optional[UnknownElementTracker] = None) -> MarkupDocument:
    """Parse BMS markup into a :class:`MarkupDocument`.

    Raises :class:`EmptyInputError` for missing or blank content and
    :class:`MalformedDocumentError` when the text is not well-formed XML or
    nests elements deeper than ``MAX_DEPTH``.
    """

    if _is_blank(raw):
        raise EmptyInputError("BMS document is empty")

    source: Union[str, bytes]
    if isinstance(raw, (bytes, bytearray)):
        # Byte input keeps its XML declaration so ElementTree can honour the encoding.
        source = bytes(raw).lstrip(b" \t\r\n")
        if source.startswith(b"\xef\xbb\xbf"):
            source = source[3:]
    else:
        source = raw.lstrip().lstrip("\ufeff").lstrip()

    try:
        element = ET.fromstring(source)
    except ET.ParseError as exc:
        raise MalformedDocumentError(f"BMS document is not well-formed XML: {exc}", cause=exc) from exc

    root_name = _strip_namespace(element.tag)
    document_type = MARKUP_ROOTS.get(root_name)
    if document_type is None:
        document_type = UNKNOWN_DOCUMENT_TYPE
        logger.warning("Unrecognized BMS root element %s; normalizing anyway", root_name)
        if tracker is not None:
            tracker.track(f"root:{root_name}")

    root = _element_to_node(element)
    if not isinstance(root, dict):
        root = {TEXT_KEY: root} if root else {}
    return MarkupDocument(root_name=root_name, document_type=document_type, root=root)
