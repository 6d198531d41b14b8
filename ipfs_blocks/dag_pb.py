"""Minimal dag-pb (protobuf) codec for UnixFS directory nodes.

Only the subset needed for directories is supported::

    PBLink { 1: Hash bytes, 2: Name string, 3: Tsize uint64 }
    PBNode { 2: Links repeated PBLink, 1: Data bytes }

Links are written before Data, as canonical dag-pb requires.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from multiformats import varint

from .cid import CID, parse_cid, read_varint
from .errors import MalformedInputError

# UnixFS Data message with Type = Directory
DIRECTORY_DATA = b"\x08\x01"

_WIRE_VARINT = 0
_WIRE_BYTES = 2


@dataclass(frozen=True)
class PBLink:
    name: str
    cid: CID
    size: int


def _key(field: int, wire_type: int) -> bytes:
    return varint.encode((field << 3) | wire_type)


def _bytes_field(field: int, value: bytes) -> bytes:
    return _key(field, _WIRE_BYTES) + varint.encode(len(value)) + value


def _encode_link(link: PBLink) -> bytes:
    return (
        _bytes_field(1, bytes(link.cid))
        + _bytes_field(2, link.name.encode("utf-8"))
        + _key(3, _WIRE_VARINT)
        + varint.encode(link.size)
    )


def sort_links(links: Iterable[PBLink]) -> List[PBLink]:
    return sorted(links, key=lambda link: link.name.encode("utf-8"))


def encode_directory(links: Iterable[PBLink], data: bytes = DIRECTORY_DATA) -> bytes:
    """Serialize a directory node; the output only depends on the link set."""
    encoded = bytearray()
    for link in sort_links(links):
        encoded += _bytes_field(2, _encode_link(link))
    encoded += _bytes_field(1, data)
    return bytes(encoded)


def _iter_fields(data: bytes):
    pos = 0
    while pos < len(data):
        key, pos = read_varint(data, pos)
        field, wire_type = key >> 3, key & 0x07
        if wire_type == _WIRE_VARINT:
            value, pos = read_varint(data, pos)
        elif wire_type == _WIRE_BYTES:
            length, pos = read_varint(data, pos)
            if pos + length > len(data):
                raise MalformedInputError(f"Field {field} runs past end of node")
            value = data[pos : pos + length]
            pos += length
        else:
            raise MalformedInputError(f"Unsupported wire type {wire_type}")
        yield field, wire_type, value


def _decode_link(data: bytes) -> PBLink:
    cid: Optional[CID] = None
    name = ""
    size = 0
    for field, wire_type, value in _iter_fields(data):
        if field == 1 and wire_type == _WIRE_BYTES:
            cid = parse_cid(value)
        elif field == 2 and wire_type == _WIRE_BYTES:
            try:
                name = value.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise MalformedInputError("PBLink name is not UTF-8") from exc
        elif field == 3 and wire_type == _WIRE_VARINT:
            size = value
        else:
            raise MalformedInputError(f"Unexpected field {field} in PBLink")
    if cid is None:
        raise MalformedInputError("PBLink without Hash")
    return PBLink(name=name, cid=cid, size=size)


def decode_directory(data: bytes) -> Tuple[List[PBLink], Optional[bytes]]:
    """Parse a dag-pb node into its links and its Data payload."""
    links: List[PBLink] = []
    node_data: Optional[bytes] = None
    for field, wire_type, value in _iter_fields(data):
        if field == 2 and wire_type == _WIRE_BYTES:
            links.append(_decode_link(value))
        elif field == 1 and wire_type == _WIRE_BYTES:
            node_data = value
        else:
            raise MalformedInputError(f"Unexpected field {field} in PBNode")
    return links, node_data
