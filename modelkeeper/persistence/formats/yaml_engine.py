"""Reference format engine.

YAML kinds (ODCS, ODPS, CADS, knowledge articles, decision records and the
manifest) are handled with PyYAML.  BPMN and DMN are kept as opaque XML
documents: only the id and name of the first ``process`` / ``decision``
element are extracted, and the raw document travels in the ``content`` field.
"""

from __future__ import annotations

import io
import xml.etree.ElementTree as ET
from typing import Any

import yaml
from anyio import to_thread

from modelkeeper.persistence.errors import FormatEngineError
from modelkeeper.persistence.models.enums import ResourceKind

BPMN_NS = "http://www.omg.org/spec/BPMN/20100524/MODEL"
DMN_NS = "https://www.omg.org/spec/DMN/20191111/MODEL/"

_XML_ELEMENT = {
    ResourceKind.PROCESS: ("process", BPMN_NS),
    ResourceKind.DECISION: ("decision", DMN_NS),
}


def load_yaml(text: str) -> Any:
    """``yaml.safe_load`` with errors mapped to ``FormatEngineError``."""
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise FormatEngineError(f"Invalid YAML: {exc}") from exc


def dump_yaml(data: Any) -> str:
    return yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)


# -- XML helpers ---------------------------------------------------------------


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _namespaces(text: str) -> list[tuple[str, str]]:
    return [ns for _, ns in ET.iterparse(io.StringIO(text), events=("start-ns",))]


def _parse_xml(kind: ResourceKind, text: str) -> dict[str, Any]:
    try:
        root = ET.fromstring(text)  # noqa: S314
    except ET.ParseError as exc:
        raise FormatEngineError(f"Invalid {kind.value.upper()} XML: {exc}") from exc

    element_name, _ = _XML_ELEMENT[kind]
    element = next((el for el in root.iter() if _local(el.tag) == element_name), None)
    if element is None:
        raise FormatEngineError(f"No <{element_name}> element in {kind.value.upper()} document")

    return {
        "id": root.get("id") or element.get("id"),
        "name": element.get("name") or element.get("id") or element_name,
        "content": text,
    }


def _render_xml(kind: ResourceKind, payload: dict[str, Any]) -> str:
    content = payload.get("content")
    entity_id = payload.get("id")
    element_name, namespace = _XML_ELEMENT[kind]

    if not content:
        root = ET.Element(f"{{{namespace}}}definitions", {"id": entity_id or ""})
        ET.SubElement(root, f"{{{namespace}}}{element_name}", {"id": f"{element_name}_1", "name": payload["name"]})
        ET.register_namespace("", namespace)
        return ET.tostring(root, encoding="unicode", xml_declaration=True) + "\n"

    try:
        root = ET.fromstring(content)  # noqa: S314
    except ET.ParseError as exc:
        raise FormatEngineError(f"Invalid {kind.value.upper()} XML: {exc}") from exc
    if root.get("id") == entity_id:
        return content

    # The entity id lives on the root element so it survives reloads.
    for prefix, uri in _namespaces(content):
        ET.register_namespace(prefix, uri)
    root.set("id", entity_id or "")
    return ET.tostring(root, encoding="unicode", xml_declaration=True) + "\n"


# -- Engine --------------------------------------------------------------------


class YamlFormatEngine:
    """Format engine backed by PyYAML and ``xml.etree``.

    Parsing runs in a worker thread so large documents do not block the loop.
    """

    async def parse(self, kind: ResourceKind, text: str) -> Any:
        if kind.is_xml:
            return await to_thread.run_sync(_parse_xml, kind, text)
        return await to_thread.run_sync(load_yaml, text)

    async def to_text(self, kind: ResourceKind, payload: dict[str, Any]) -> str:
        if kind.is_xml:
            return _render_xml(kind, payload)
        return dump_yaml(payload)

    async def parse_manifest(self, text: str) -> Any:
        return await to_thread.run_sync(load_yaml, text)

    async def manifest_to_text(self, payload: dict[str, Any]) -> str:
        return dump_yaml(payload)
