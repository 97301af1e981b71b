# src/tasks/xml_codec.py — v2
"""Compact JSON <-> XML conversion for metadata documents.

Follows the "compact" convention used by common JSON/XML converters:

- each key of an object becomes an element, so a top-level object with
  several keys yields several sibling root elements;
- a list value becomes repeated elements with the same tag;
- ``_attributes`` holds element attributes, ``_text`` element text;
- ``_declaration`` at top level renders the ``<?xml ...?>`` prolog.

Where the compact form alone cannot be read back unambiguously, a marker
attribute is added:

- ``_type="number|boolean|null"`` on an element whose text is not a
  string, and ``_type="string"`` on an empty string;
- ``_type="array"`` on an element holding a list nested in a list, whose
  members are rendered as ``<item>`` children;
- ``_object="true"`` on an object with neither child keys nor attributes;
- ``_array="true"`` on each element of a one-item list, and a single
  ``_array="empty"`` element for an empty list.

:func:`xml_to_json` reads the markers back, so
``xml_to_json(json_to_xml(doc)) == doc`` for any JSON object whose keys are
element names. Attribute values always come back as strings and an empty
``_attributes`` object is dropped.
"""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from typing import Any

from syndication.core.errors import ValidationError

ATTRIBUTES_KEY = "_attributes"
TEXT_KEY = "_text"
DECLARATION_KEY = "_declaration"

TYPE_ATTR = "_type"
ARRAY_ATTR = "_array"
OBJECT_ATTR = "_object"
ITEM_TAG = "item"
_MARKERS = frozenset({TYPE_ATTR, ARRAY_ATTR, OBJECT_ATTR})

_NAME_RE = re.compile(r"^[A-Za-z_][\w.\-]*$")
_DECLARATION_RE = re.compile(r"^\s*<\?xml(?P<attrs>[^?]*)\?>", re.DOTALL)
_ATTR_RE = re.compile(r'([\w:.\-]+)\s*=\s*"([^"]*)"')
_WRAPPER = "syndication-root"


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _scalar_type(value: Any) -> str | None:
    if value == "":
        return "string"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return None


def _check_name(name: str) -> str:
    if not _NAME_RE.match(name):
        raise ValidationError(f"Not a valid XML element name: {name!r}")
    return name


def _set_text(element: ET.Element, value: Any) -> None:
    if isinstance(value, (dict, list)):
        raise ValidationError(f"{TEXT_KEY} must be a scalar")
    kind = _scalar_type(value)
    if kind is not None:
        element.set(TYPE_ATTR, kind)
    element.text = _scalar(value) or None


def _fill(element: ET.Element, value: Any) -> None:
    if isinstance(value, dict):
        has_children = False
        for key, child in value.items():
            if key == ATTRIBUTES_KEY:
                if not isinstance(child, dict):
                    raise ValidationError(f"{ATTRIBUTES_KEY} must be an object")
                for attr, attr_value in child.items():
                    if attr in _MARKERS:
                        raise ValidationError(f"Attribute name {attr!r} is reserved")
                    element.set(_check_name(attr), _scalar(attr_value))
            elif key == TEXT_KEY:
                _set_text(element, child)
            else:
                _append(element, key, child)
                has_children = True
        if not has_children and not value.get(ATTRIBUTES_KEY):
            element.set(OBJECT_ATTR, "true")
    elif isinstance(value, list):
        element.set(TYPE_ATTR, "array")
        for item in value:
            _fill(ET.SubElement(element, ITEM_TAG), item)
    else:
        _set_text(element, value)


def _append(parent: ET.Element, key: str, value: Any) -> None:
    _check_name(key)
    if not isinstance(value, list):
        _fill(ET.SubElement(parent, key), value)
        return
    if not value:
        ET.SubElement(parent, key, {ARRAY_ATTR: "empty"})
        return
    for item in value:
        element = ET.SubElement(parent, key)
        if len(value) == 1:
            element.set(ARRAY_ATTR, "true")
        _fill(element, item)


def _declaration(value: Any) -> str:
    attrs = value.get(ATTRIBUTES_KEY, {}) if isinstance(value, dict) else {}
    rendered = "".join(f' {k}="{_scalar(v)}"' for k, v in attrs.items())
    return f"<?xml{rendered}?>"


def json_to_xml(document: dict[str, Any], indent: int = 4) -> str:
    """Serialize a JSON object to XML text.

    Args:
        document: Parsed JSON object; each key is a root element.
        indent: Spaces per nesting level; 0 renders each root on one line.

    Raises:
        ValidationError: If the document is not an object, a key is not
            a valid element name, or an attribute uses a marker name.
    """
    if not isinstance(document, dict):
        raise ValidationError("Metadata document must be a JSON object")

    parts: list[str] = []
    holder = ET.Element(_WRAPPER)
    for key, value in document.items():
        if key == DECLARATION_KEY:
            parts.append(_declaration(value))
        else:
            _append(holder, key, value)

    for root in holder:
        if indent > 0:
            ET.indent(root, space=" " * indent)
        parts.append(ET.tostring(root, encoding="unicode"))
    return "\n".join(parts)


def _typed(text: str | None, kind: str | None) -> Any:
    if kind == "null":
        return None
    if kind in ("number", "boolean"):
        try:
            return json.loads(text or "")
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Element text {text!r} is not a {kind}") from exc
    return text or ""


def _to_value(element: ET.Element) -> Any:
    kind = element.get(TYPE_ATTR)
    children = list(element)
    if kind == "array":
        return [_to_value(child) for child in children]

    attrs = {k: v for k, v in element.attrib.items() if k not in _MARKERS}
    if not children and not attrs and element.get(OBJECT_ATTR) is None:
        return _typed(element.text, kind)

    value: dict[str, Any] = {}
    if attrs:
        value[ATTRIBUTES_KEY] = attrs
    # indentation fills the text of an element with children
    text = element.text.strip() if children and element.text else element.text
    if text or kind is not None:
        value[TEXT_KEY] = _typed(text, kind)
    _collect(children, value)
    return value


def _collect(children: list[ET.Element], into: dict[str, Any]) -> None:
    repeated: set[str] = set()
    for child in children:
        tag = child.tag
        marker = child.get(ARRAY_ATTR)
        if marker == "empty":
            into[tag] = []
            repeated.add(tag)
            continue
        item = _to_value(child)
        if tag in repeated:
            into[tag].append(item)
        elif tag in into:
            into[tag] = [into[tag], item]
            repeated.add(tag)
        elif marker is not None:
            into[tag] = [item]
            repeated.add(tag)
        else:
            into[tag] = item


def xml_to_json(text: str) -> dict[str, Any]:
    """Parse XML text produced by :func:`json_to_xml` back into an object.

    Raises:
        ValidationError: If the text is not well-formed.
    """
    result: dict[str, Any] = {}
    match = _DECLARATION_RE.match(text)
    if match:
        attrs = dict(_ATTR_RE.findall(match.group("attrs")))
        result[DECLARATION_KEY] = {ATTRIBUTES_KEY: attrs} if attrs else {}
        text = text[match.end():]

    try:
        holder = ET.fromstring(f"<{_WRAPPER}>{text}</{_WRAPPER}>")
    except ET.ParseError as exc:
        raise ValidationError(f"Malformed XML: {exc}") from exc

    _collect(list(holder), result)
    return result
