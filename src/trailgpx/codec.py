from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Callable, Union
from xml.sax.saxutils import escape

from lxml import etree

from trailgpx.bounds import Bounds
from trailgpx.errors import GPXDecodeError, GPXEncodeError, GPXReadError
from trailgpx.model import (
    XSI_NAMESPACE,
    Copyright,
    Document,
    Email,
    Extensions,
    Link,
    Metadata,
    Person,
    Route,
    Track,
    TrackSegment,
    Waypoint,
)

logger = logging.getLogger(__name__)

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'
INDENT = "  "

GPXSource = Union[bytes, bytearray, str, os.PathLike, IO[bytes]]

_SCHEMA_LOCATION_ATTR = f"{{{XSI_NAMESPACE}}}schemaLocation"
_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>")

# Characters outside the XML 1.0 Char production.
_INVALID_XML_CHARS = re.compile(
    f"[^\t\n\r -{chr(0xD7FF)}{chr(0xE000)}-{chr(0xFFFD)}{chr(0x10000)}-{chr(0x10FFFF)}]"
)

_TEXT_ENTITIES = {"\r": "&#13;"}
_ATTR_ENTITIES = {'"': "&quot;", "\n": "&#10;", "\r": "&#13;", "\t": "&#9;"}

# Field kinds shared by the decoder and the encoder.
TEXT = "text"
FLOAT = "float"
INT = "int"
LINKS = "links"
PERSON = "person"
COPYRIGHT = "copyright"
BOUNDS = "bounds"
EXTENSIONS = "extensions"

# (element name, attribute name, kind) in GPX 1.1 schema order.
FieldTable = tuple[tuple[str, str, str], ...]

METADATA_FIELDS: FieldTable = (
    ("name", "name", TEXT),
    ("desc", "description", TEXT),
    ("author", "author", PERSON),
    ("copyright", "copyright", COPYRIGHT),
    ("link", "links", LINKS),
    ("time", "time", TEXT),
    ("keywords", "keywords", TEXT),
    ("bounds", "bounds", BOUNDS),
    ("extensions", "extensions", EXTENSIONS),
)

WAYPOINT_FIELDS: FieldTable = (
    ("ele", "elevation", FLOAT),
    ("time", "time", TEXT),
    ("magvar", "magnetic_variation", FLOAT),
    ("geoidheight", "geoid_height", FLOAT),
    ("name", "name", TEXT),
    ("cmt", "comment", TEXT),
    ("desc", "description", TEXT),
    ("src", "source", TEXT),
    ("link", "links", LINKS),
    ("sym", "symbol", TEXT),
    ("type", "type", TEXT),
    ("fix", "type_of_gps_fix", TEXT),
    ("sat", "satellites", INT),
    ("hdop", "horizontal_dilution", FLOAT),
    ("vdop", "vertical_dilution", FLOAT),
    ("pdop", "position_dilution", FLOAT),
    ("ageofdgpsdata", "age_of_dgps_data", FLOAT),
    ("dgpsid", "dgps_id", INT),
    ("extensions", "extensions", EXTENSIONS),
)

# Shared by <rte> and <trk>; their point/segment lists follow these.
ROUTE_FIELDS: FieldTable = (
    ("name", "name", TEXT),
    ("cmt", "comment", TEXT),
    ("desc", "description", TEXT),
    ("src", "source", TEXT),
    ("link", "links", LINKS),
    ("number", "number", INT),
    ("type", "type", TEXT),
    ("extensions", "extensions", EXTENSIONS),
)

_POINT_CHILD_NAMES = frozenset(name for name, _, _ in WAYPOINT_FIELDS)


# --------------------------------------------------------------------------
# Decoding


def _make_parser() -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
    )


def _local_name(element) -> str:
    return etree.QName(element).localname


def _group_children(element) -> dict[str, list]:
    grouped: dict[str, list] = {}
    for child in element.iterchildren(tag=etree.Element):
        grouped.setdefault(_local_name(child), []).append(child)
    return grouped


def _attributes(element) -> dict[str, str]:
    """Unqualified attributes only; xsi:type and friends are not GPX fields."""
    return {
        name: value
        for name, value in element.attrib.items()
        if etree.QName(name).namespace is None
    }


def _parse_number(text: str, convert: Callable[[str], Any], where: str):
    try:
        return convert(text)
    except ValueError:
        raise GPXDecodeError(f"Invalid numeric value for {where}: {text!r}") from None


class _Decoder:
    def __init__(self, nsmap: dict[str | None, str]):
        self._namespace = nsmap.get(None)
        # Declarations the encoder writes on <gpx>; redundant inside extensions.
        self._root_declarations = [
            re.compile(
                r"\s+xmlns" + (f":{re.escape(prefix)}" if prefix else "")
                + r"=([\"'])" + re.escape(uri) + r"\1"
            )
            for prefix, uri in nsmap.items()
        ]

    def document(self, root) -> Document:
        if _local_name(root) != "gpx":
            raise GPXDecodeError(
                f"Expected <gpx> root element, found <{_local_name(root)}>"
            )

        document = Document()
        if self._namespace:
            document.xmlns = self._namespace
        if root.nsmap.get("xsi"):
            document.xmlns_xsi = root.nsmap["xsi"]
        document.namespaces = {
            prefix: uri
            for prefix, uri in root.nsmap.items()
            if prefix is not None and prefix != "xsi"
        }
        schema_location = root.get(_SCHEMA_LOCATION_ATTR)
        if schema_location is not None:
            document.schema_location = schema_location
        if root.get("version") is not None:
            document.version = root.get("version")
        if root.get("creator") is not None:
            document.creator = root.get("creator")

        grouped = _group_children(root)
        if "metadata" in grouped:
            document.metadata = Metadata(
                **self.fields(grouped["metadata"][0], METADATA_FIELDS)
            )
        document.waypoints = [self.point(el) for el in grouped.get("wpt", [])]
        document.routes = [self.route(el) for el in grouped.get("rte", [])]
        document.tracks = [self.track(el) for el in grouped.get("trk", [])]
        document.extensions = self.extensions(grouped.get("extensions"))
        return document

    def fields(self, element, table: FieldTable) -> dict[str, Any]:
        grouped = _group_children(element)
        values: dict[str, Any] = {}
        for tag, name, kind in table:
            elements = grouped.get(tag)
            if kind == LINKS:
                values[name] = [self.link(el) for el in elements or []]
            elif not elements:
                values[name] = None
            elif kind == EXTENSIONS:
                values[name] = self.extensions(elements)
            elif kind == PERSON:
                values[name] = self.person(elements[0])
            elif kind == COPYRIGHT:
                values[name] = self.copyright(elements[0])
            elif kind == BOUNDS:
                values[name] = self.bounds(elements[0])
            else:
                values[name] = self.scalar(elements[0], kind)
        return values

    def scalar(self, element, kind: str):
        if len(element):
            raise GPXDecodeError(
                f"Element <{_local_name(element)}> must contain text, not child elements"
            )
        text = element.text or ""
        if kind == TEXT:
            return text or None
        text = text.strip()
        if not text:
            return None
        convert = float if kind == FLOAT else int
        return _parse_number(text, convert, f"<{_local_name(element)}>")

    def point(self, element) -> Waypoint:
        attributes = _attributes(element)
        misplaced = sorted(_POINT_CHILD_NAMES.intersection(attributes))
        if misplaced:
            raise GPXDecodeError(
                f"<{_local_name(element)}> carries {', '.join(misplaced)} as attributes; "
                "they must be child elements"
            )
        for required in ("lat", "lon"):
            if required not in attributes:
                raise GPXDecodeError(
                    f"<{_local_name(element)}> is missing the required {required!r} attribute"
                )
        return Waypoint(
            latitude=_parse_number(attributes["lat"], float, "lat"),
            longitude=_parse_number(attributes["lon"], float, "lon"),
            **self.fields(element, WAYPOINT_FIELDS),
        )

    def route(self, element) -> Route:
        return Route(
            **self.fields(element, ROUTE_FIELDS),
            points=[self.point(el) for el in _group_children(element).get("rtept", [])],
        )

    def segment(self, element) -> TrackSegment:
        grouped = _group_children(element)
        return TrackSegment(
            points=[self.point(el) for el in grouped.get("trkpt", [])],
            extensions=self.extensions(grouped.get("extensions")),
        )

    def track(self, element) -> Track:
        return Track(
            **self.fields(element, ROUTE_FIELDS),
            segments=[
                self.segment(el) for el in _group_children(element).get("trkseg", [])
            ],
        )

    def link(self, element) -> Link:
        grouped = _group_children(element)
        return Link(
            href=element.get("href", ""),
            text=self.scalar(grouped["text"][0], TEXT) if "text" in grouped else None,
            type=self.scalar(grouped["type"][0], TEXT) if "type" in grouped else None,
        )

    def person(self, element) -> Person:
        grouped = _group_children(element)
        email = None
        if "email" in grouped:
            email_el = grouped["email"][0]
            email = Email(id=email_el.get("id", ""), domain=email_el.get("domain", ""))
        return Person(
            name=self.scalar(grouped["name"][0], TEXT) if "name" in grouped else None,
            email=email,
            link=self.link(grouped["link"][0]) if "link" in grouped else None,
        )

    def copyright(self, element) -> Copyright:
        grouped = _group_children(element)
        return Copyright(
            author=element.get("author", ""),
            year=self.scalar(grouped["year"][0], TEXT) if "year" in grouped else None,
            license=(
                self.scalar(grouped["license"][0], TEXT)
                if "license" in grouped
                else None
            ),
        )

    def bounds(self, element) -> Bounds:
        def coordinate(name: str) -> float:
            value = element.get(name)
            if value is None or not value.strip():
                return 0.0
            return _parse_number(value, float, f"bounds {name}")

        return Bounds(
            min_latitude=coordinate("minlat"),
            max_latitude=coordinate("maxlat"),
            min_longitude=coordinate("minlon"),
            max_longitude=coordinate("maxlon"),
        )

    def extensions(self, elements) -> Extensions | None:
        if not elements:
            return None
        element = elements[0]
        parts = [element.text or ""]
        parts.extend(
            etree.tostring(child, encoding="unicode", with_tail=True)
            for child in element
        )
        content = "".join(parts)
        for declaration in self._root_declarations:
            content = declaration.sub("", content)
        if not content.strip():
            return None
        return Extensions(content=content)


def _decode_root(root) -> Document:
    document = _Decoder(root.nsmap).document(root)
    logger.debug(
        "Decoded GPX: %d waypoints, %d routes, %d tracks",
        len(document.waypoints),
        len(document.routes),
        len(document.tracks),
    )
    return document


def parse_bytes(content: bytes) -> Document:
    """Decodes a GPX document. The charset comes from the BOM or XML declaration."""
    try:
        root = etree.fromstring(bytes(content), parser=_make_parser())
    except etree.XMLSyntaxError as exc:
        raise GPXDecodeError(f"Invalid GPX XML: {exc}") from exc
    return _decode_root(root)


def parse_string(text: str) -> Document:
    """Decodes already-decoded XML text; any encoding declaration is ignored."""
    text = _XML_DECLARATION.sub("", text.lstrip("\ufeff"), count=1)
    try:
        root = etree.fromstring(text, parser=_make_parser())
    except etree.XMLSyntaxError as exc:
        raise GPXDecodeError(f"Invalid GPX XML: {exc}") from exc
    return _decode_root(root)


def parse_stream(stream: IO) -> Document:
    try:
        content = stream.read()
    except OSError as exc:
        raise GPXReadError(f"Failed to read GPX stream: {exc}") from exc
    if isinstance(content, str):
        return parse_string(content)
    return parse_bytes(content)


def parse_path(path: str | os.PathLike) -> Document:
    path = Path(path)
    logger.debug("Reading GPX from %s", path)
    try:
        handle = path.open("rb")
    except OSError as exc:
        raise GPXReadError(f"Cannot open GPX file {path}: {exc}") from exc
    with handle:
        return parse_stream(handle)


def parse(source: GPXSource) -> Document:
    """
    Decodes a GPX document from bytes, XML text, a filesystem path or a file object.
    Raises GPXReadError when the source cannot be read and GPXDecodeError when
    it is not a GPX document.
    """
    if isinstance(source, (bytes, bytearray)):
        return parse_bytes(source)
    if isinstance(source, str):
        return parse_string(source)
    if isinstance(source, os.PathLike):
        return parse_path(source)
    if hasattr(source, "read"):
        return parse_stream(source)
    raise TypeError(f"Unsupported GPX source: {type(source).__name__}")


# --------------------------------------------------------------------------
# Encoding


@dataclass
class _Node:
    tag: str
    attributes: list[tuple[str, str]] = field(default_factory=list)
    text: str | None = None
    raw: str | None = None
    children: list[_Node] = field(default_factory=list)


def format_number(value: float | int) -> str:
    """Shortest text that reads back to the same value; integral floats drop '.0'."""
    if isinstance(value, int):
        return str(value)
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def _is_present(value) -> bool:
    return value is not None and value != "" and value != 0


def _format_value(value) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return str(value)


def _link_node(tag: str, link: Link) -> _Node:
    node = _Node(tag, [("href", link.href)])
    _append_leaf(node, "text", link.text)
    _append_leaf(node, "type", link.type)
    return node


def _append_leaf(parent: _Node, tag: str, value) -> None:
    if _is_present(value):
        parent.children.append(_Node(tag, text=_format_value(value)))


def _append_fields(parent: _Node, item, table: FieldTable) -> None:
    for tag, name, kind in table:
        value = getattr(item, name)
        if kind == LINKS:
            parent.children.extend(_link_node(tag, link) for link in value)
        elif value is None:
            continue
        elif kind == EXTENSIONS:
            _append_extensions(parent, value)
        elif kind == PERSON:
            node = _Node(tag)
            _append_leaf(node, "name", value.name)
            if value.email is not None:
                node.children.append(
                    _Node("email", [("id", value.email.id), ("domain", value.email.domain)])
                )
            if value.link is not None:
                node.children.append(_link_node("link", value.link))
            parent.children.append(node)
        elif kind == COPYRIGHT:
            node = _Node(tag, [("author", value.author)])
            _append_leaf(node, "year", value.year)
            _append_leaf(node, "license", value.license)
            parent.children.append(node)
        elif kind == BOUNDS:
            attributes = [
                (attr, format_number(coordinate))
                for attr, coordinate in (
                    ("minlat", value.min_latitude),
                    ("minlon", value.min_longitude),
                    ("maxlat", value.max_latitude),
                    ("maxlon", value.max_longitude),
                )
                if _is_present(coordinate)
            ]
            parent.children.append(_Node(tag, attributes))
        else:
            _append_leaf(parent, tag, value)


def _append_extensions(parent: _Node, extensions: Extensions | None) -> None:
    if extensions is not None and extensions.content:
        parent.children.append(_Node("extensions", raw=extensions.content))


def _point_node(tag: str, point: Waypoint) -> _Node:
    node = _Node(
        tag,
        [("lat", format_number(point.latitude)), ("lon", format_number(point.longitude))],
    )
    _append_fields(node, point, WAYPOINT_FIELDS)
    return node


def _route_node(route: Route) -> _Node:
    node = _Node("rte")
    _append_fields(node, route, ROUTE_FIELDS)
    node.children.extend(_point_node("rtept", point) for point in route.points)
    return node


def _segment_node(segment: TrackSegment) -> _Node:
    node = _Node("trkseg")
    node.children.extend(_point_node("trkpt", point) for point in segment.points)
    _append_extensions(node, segment.extensions)
    return node


def _track_node(track: Track) -> _Node:
    node = _Node("trk")
    _append_fields(node, track, ROUTE_FIELDS)
    node.children.extend(_segment_node(segment) for segment in track.segments)
    return node


def _document_node(document: Document) -> _Node:
    node = _Node(
        "gpx",
        [
            ("xmlns", document.xmlns),
            ("xmlns:xsi", document.xmlns_xsi),
            *((f"xmlns:{prefix}", uri) for prefix, uri in document.namespaces.items()),
            ("xsi:schemaLocation", document.schema_location),
            ("version", document.version),
            ("creator", document.creator),
        ],
    )
    if document.metadata is not None:
        metadata = _Node("metadata")
        _append_fields(metadata, document.metadata, METADATA_FIELDS)
        node.children.append(metadata)
    node.children.extend(_point_node("wpt", point) for point in document.waypoints)
    node.children.extend(_route_node(route) for route in document.routes)
    node.children.extend(_track_node(track) for track in document.tracks)
    _append_extensions(node, document.extensions)
    return node


def _checked(tag: str, value: str) -> str:
    match = _INVALID_XML_CHARS.search(value)
    if match is not None:
        raise GPXEncodeError(
            f"<{tag}> value contains a character not allowed in XML: {match.group()!r}"
        )
    return value


def _render(node: _Node, depth: int, lines: list[str]) -> None:
    indent = INDENT * depth
    attributes = "".join(
        f' {name}="{escape(_checked(node.tag, value), _ATTR_ENTITIES)}"'
        for name, value in node.attributes
    )
    if node.children:
        lines.append(f"{indent}<{node.tag}{attributes}>")
        for child in node.children:
            _render(child, depth + 1, lines)
        lines.append(f"{indent}</{node.tag}>")
        return

    if node.raw is not None:
        body = _checked(node.tag, node.raw)
    else:
        body = escape(_checked(node.tag, node.text or ""), _TEXT_ENTITIES)
    lines.append(f"{indent}<{node.tag}{attributes}>{body}</{node.tag}>")


def to_xml(document: Document) -> str:
    """Indented <gpx> element text without the XML declaration."""
    lines: list[str] = []
    _render(_document_node(document), 0, lines)
    return "\n".join(lines)


def encode(document: Document) -> bytes:
    content = (XML_HEADER + to_xml(document)).encode("utf-8")
    logger.debug("Encoded GPX document (%d bytes)", len(content))
    return content


def new_document() -> Document:
    """Empty document carrying the GPX 1.1 namespace, schema location, version and creator."""
    return Document()
