"""
Read OSM XML documents into raw node, way, and relation records.

For file format information see https://wiki.openstreetmap.org/wiki/OSM_XML
"""

from __future__ import annotations

import bz2
import gzip
import re
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Callable
from typing import TextIO
from typing import Union
from xml.etree.ElementTree import Element
from xml.etree.ElementTree import ParseError as EtreeParseError
from xml.etree.ElementTree import fromstring as etree_fromstring
from xml.sax import SAXParseException
from xml.sax import parseString as sax_parse_string
from xml.sax.handler import ContentHandler

from . import settings
from ._errors import ParseError
from ._errors import StructuralInvariantError
from .elements import META_ATTRS
from .elements import Member
from .elements import RawNode
from .elements import RawRelation
from .elements import RawWay

if TYPE_CHECKING:
    from collections.abc import Iterator
    from xml.sax.xmlreader import AttributesImpl

RawElement = Union[RawNode, RawWay, RawRelation]

# relation member types recognized in <member type="..."> attributes
MEMBER_TYPES = {"node", "way", "relation"}

# numeric attributes must be plain decimal text, so whitespace and special
# values like "nan" are rejected
_INTEGER = re.compile(r"[-+]?[0-9]+")
_DECIMAL = re.compile(r"[-+]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][-+]?[0-9]+)?")


@dataclass
class Counters:
    """Element counts from a read-only pre-scan of an OSM XML document."""

    nodes: int = 0
    node_tags: int = 0
    ways: int = 0
    way_tags: int = 0
    way_nodes: int = 0
    edges: int = 0
    relations: int = 0
    relation_tags: int = 0
    relation_members: int = 0


class _OSMCountHandler(ContentHandler):
    """
    SAX content handler that counts OSM XML elements without building them.

    Counts are accumulated in self.counters. Wrapper elements at any depth are
    ignored, matching the tree walker's traversal.
    """

    def __init__(self) -> None:
        self._entity: str | None = None
        self._depth = 0
        self._refs = 0
        self.counters = Counters()

    def startElement(self, name: str, attrs: AttributesImpl) -> None:  # noqa: N802
        if self._entity is None:
            if name == "node":
                self.counters.nodes += 1
            elif name == "way":
                self.counters.ways += 1
                self._refs = 0
            elif name == "relation":
                self.counters.relations += 1
            else:
                return
            self._entity = name
            self._depth = 1
            return

        self._depth += 1
        if name == "tag" and "k" in attrs:
            if self._entity == "node":
                self.counters.node_tags += 1
            elif self._entity == "way":
                self.counters.way_tags += 1
            else:
                self.counters.relation_tags += 1
        elif name == "nd" and self._entity == "way":
            self._refs += 1
        elif name == "member" and self._entity == "relation":
            self.counters.relation_members += 1

    def endElement(self, name: str) -> None:  # noqa: N802, ARG002
        if self._entity is None:
            return
        self._depth -= 1
        if self._depth == 0:
            if self._entity == "way":
                self.counters.way_nodes += self._refs
                self.counters.edges += max(self._refs - 1, 0)
            self._entity = None


def count_elements(xml_text: str | bytes) -> Counters:
    """
    Count the nodes, ways, relations, and their tags and members.

    This is a streaming, read-only first pass over the document, letting
    callers pre-size arrays exactly before a second pass builds them.

    Parameters
    ----------
    xml_text
        The OSM XML document.

    Returns
    -------
    counters
    """
    handler = _OSMCountHandler()
    try:
        sax_parse_string(xml_text, handler)  # noqa: S317
    except SAXParseException as e:
        msg = f"Malformed OSM XML: {e}"
        raise ParseError(msg) from e
    return handler.counters


def parse_xml(xml_text: str | bytes) -> Element:
    """
    Parse an OSM XML document and return its root element.

    Parameters
    ----------
    xml_text
        The OSM XML document.

    Returns
    -------
    root
    """
    try:
        return etree_fromstring(xml_text)  # noqa: S314
    except EtreeParseError as e:
        msg = f"Malformed OSM XML: {e}"
        raise ParseError(msg) from e


def iter_raw_elements(root: Element, *, strict: bool | None = None) -> Iterator[RawElement]:
    """
    Walk an XML element tree and yield its raw node/way/relation records.

    Elements named `node`, `way`, and `relation` are consumed whole by their
    own sub-walker. Any other element is treated as a wrapper and recursed
    into, so `<osm>`, `<modify>`, `<create>`, and similar containers are
    tolerated at any nesting depth.

    Parameters
    ----------
    root
        The document's root element.
    strict
        If True, raise on tag values without a preceding key. If None, use the
        `settings.strict_tag_pairs` value.

    Yields
    ------
    raw_element
    """
    if strict is None:
        strict = settings.strict_tag_pairs

    walker = _SUB_WALKERS.get(root.tag)
    if walker is not None:
        yield walker(root, strict)
    else:
        for child in root:
            yield from iter_raw_elements(child, strict=strict)


def _int_attr(element: Element, name: str) -> int:
    # absent attributes default to zero; present but invalid ones are fatal
    text = element.get(name)
    if text is None:
        return 0
    if _INTEGER.fullmatch(text) is None:
        msg = f"Invalid integer {name}={text!r} in <{element.tag}> element"
        raise ParseError(msg)
    return int(text)


def _float_attr(element: Element, name: str) -> float:
    text = element.get(name)
    if text is None:
        return 0.0
    if _DECIMAL.fullmatch(text) is None:
        msg = f"Invalid number {name}={text!r} in <{element.tag}> element"
        raise ParseError(msg)
    return float(text)


def _meta(element: Element) -> dict[str, str]:
    return {k: element.get(k, "") for k in META_ATTRS}


def _read_tag(element: Element, pairs: list[tuple[str, str]], owner: str, *, strict: bool) -> int:
    """
    Read a `<tag>` element's key/value attributes in document order.

    A `k` attribute opens a pending pair that the next `v` attribute
    completes. A `v` attribute with no pending key is dropped, or raises if
    `strict`. A key left without a value is a structural error.

    Parameters
    ----------
    element
        The `<tag>` element.
    pairs
        The owner's key/value pairs, appended to in place.
    owner
        Description of the owning element, for error messages.
    strict
        Whether to raise on values without a preceding key.

    Returns
    -------
    dropped
        How many values were dropped.
    """
    dropped = 0
    pending: str | None = None
    for attr, value in element.attrib.items():
        if attr == "k":
            if pending is not None:
                msg = f"Sizes of keys and values differ in {owner}: key {pending!r} has no value"
                raise StructuralInvariantError(msg)
            pending = value
        elif attr == "v":
            if pending is not None:
                pairs.append((pending, value))
                pending = None
            elif strict:
                msg = f"Sizes of keys and values differ in {owner}: value {value!r} has no key"
                raise StructuralInvariantError(msg)
            else:
                dropped += 1

    if pending is not None:
        msg = f"Sizes of keys and values differ in {owner}: key {pending!r} has no value"
        raise StructuralInvariantError(msg)
    return dropped


def _read_center(element: Element) -> tuple[float, float]:
    return (_float_attr(element, "lat"), _float_attr(element, "lon"))


def _walk_node(element: Element, strict: bool) -> RawNode:  # noqa: FBT001
    raw = RawNode(
        id=_int_attr(element, "id"),
        lat=_float_attr(element, "lat"),
        lon=_float_attr(element, "lon"),
        meta=_meta(element),
    )
    owner = f"node {raw.id}"
    for child in element.iter("tag"):
        raw.dropped_values += _read_tag(child, raw.tags, owner, strict=strict)
    return raw


def _walk_way(element: Element, strict: bool) -> RawWay:  # noqa: FBT001
    raw = RawWay(id=_int_attr(element, "id"), meta=_meta(element))
    owner = f"way {raw.id}"

    # node refs are kept in document order: their order is the geometry
    for child in element.iter():
        if child.tag == "nd":
            raw.nodes.append(_int_attr(child, "ref"))
        elif child.tag == "tag":
            raw.dropped_values += _read_tag(child, raw.tags, owner, strict=strict)
        elif child.tag == "center":
            raw.center = _read_center(child)
    return raw


def _walk_relation(element: Element, strict: bool) -> RawRelation:  # noqa: FBT001
    raw = RawRelation(id=_int_attr(element, "id"), meta=_meta(element))
    owner = f"relation {raw.id}"

    for child in element.iter():
        if child.tag == "member":
            member_type = child.get("type", "")
            if member_type not in MEMBER_TYPES:
                msg = f"Unknown member type {member_type!r} in {owner}"
                raise StructuralInvariantError(msg)
            member = Member(ref=_int_attr(child, "ref"), role=child.get("role", ""), type=member_type)
            raw.members.append(member)
        elif child.tag == "tag":
            raw.dropped_values += _read_tag(child, raw.tags, owner, strict=strict)
        elif child.tag == "center":
            raw.center = _read_center(child)
    return raw


_SUB_WALKERS: dict[str, Callable[[Element, bool], RawElement]] = {
    "node": _walk_node,
    "way": _walk_way,
    "relation": _walk_relation,
}


@contextmanager
def _open_file(filepath: Path, encoding: str) -> Iterator[TextIO]:
    """
    Open a file and return a file object, optionally handling bz2 or gz files.

    Uses a wrapper context manager to yield the file object to ensure the file
    will always get closed when the caller is finished with it.

    Parameters
    ----------
    filepath
        Path to file.
    encoding
        The file's character encoding.

    Returns
    -------
    file
        The file handle.
    """
    if filepath.suffix == ".bz2":
        with bz2.open(filepath, mode="rt", encoding=encoding) as file:
            yield file
    elif filepath.suffix == ".gz":
        with gzip.open(filepath, mode="rt", encoding=encoding) as file:
            yield file
    else:
        with filepath.open(mode="rt", encoding=encoding) as file:
            yield file


def read_xml(filepath: str | Path, *, encoding: str = "utf-8") -> str:
    """
    Read an OSM XML document from a file into a string.

    Files with a `.bz2` or `.gz` suffix are decompressed transparently.

    Parameters
    ----------
    filepath
        Path to file containing OSM XML data.
    encoding
        The XML file's character encoding.

    Returns
    -------
    xml_text
    """
    with _open_file(Path(filepath), encoding) as file:
        return file.read()
