"""Parsing of ``org.freedesktop.DBus.Introspectable.Introspect`` replies."""

from __future__ import annotations

from typing import Any, List
from xml.parsers.expat import ExpatError

import xmltodict

from bluezio.core.errors import IntrospectionParseError

__all__ = ["child_node_names"]


def _as_list(value: Any) -> List[Any]:
    # xmltodict collapses a single child element into a dict
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _parse(path: str, introspect_xml: str) -> dict:
    try:
        data = xmltodict.parse(introspect_xml)
    except ExpatError as exc:
        raise IntrospectionParseError(path, str(exc)) from exc
    if not isinstance(data, dict) or "node" not in data:
        raise IntrospectionParseError(path, "missing <node> root element")
    node = data["node"]
    # An empty <node/> parses to None
    return node if isinstance(node, dict) else {}


def child_node_names(path: str, introspect_xml: str) -> List[str]:
    """Return the names of the immediate child nodes, in document order.

    Parameters
    ----------
    path : str
        Object path that was introspected (used for error reporting)
    introspect_xml : str
        The XML document returned by ``Introspect()``

    Raises
    ------
    IntrospectionParseError
        If the document is not well-formed or has no ``<node>`` root
    """
    names: List[str] = []
    for child in _as_list(_parse(path, introspect_xml).get("node")):
        if not isinstance(child, dict):
            continue
        name = child.get("@name")
        if name:
            names.append(name)
    return names
