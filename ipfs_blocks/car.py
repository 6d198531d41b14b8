"""CARv1 archive reader, plus a small writer for exporting built trees.

Layout::

    varint(len(header)) header
    varint(len(cid) + len(payload)) cid payload    (repeated)

The header is a DAG-CBOR map ``{"roots": [CID, ...], "version": 1}``.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Sequence

from multiformats import varint

from .cid import CID, Block, read_cid, read_varint
from .errors import MalformedInputError

logger = logging.getLogger(__name__)

CAR_VERSION = 1
CBOR_CID_TAG = 42


def iter_car_sections(data: bytes) -> Iterator[bytes]:
    """Yield every length-prefixed section of ``data``, header included."""
    pos = 0
    while pos < len(data):
        length, pos = read_varint(data, pos)
        if length == 0:
            raise MalformedInputError(f"Empty CAR section at offset {pos}")
        end = pos + length
        if end > len(data):
            raise MalformedInputError(
                f"CAR section at offset {pos} needs {length} bytes, "
                f"only {len(data) - pos} left"
            )
        yield data[pos:end]
        pos = end


def _read_block(section: bytes) -> Block:
    cid, offset = read_cid(section, 0)
    block = Block(cid=cid, payload=section[offset:])
    if not block.verify():
        raise MalformedInputError(f"Block payload does not match {cid}")
    return block


def read_car(data: bytes) -> List[Block]:
    """Decode every block of a CAR archive, skipping its header.

    Raises:
        MalformedInputError: the archive is empty, truncated, or contains a
            block whose payload does not hash to its CID.
    """
    data = bytes(data)
    sections = list(iter_car_sections(data))
    if not sections:
        raise MalformedInputError("CAR archive has no header")
    blocks = [_read_block(section) for section in sections[1:]]
    logger.debug("Read %d blocks from %d byte CAR", len(blocks), len(data))
    return blocks


def _cbor_head(major: int, value: int) -> bytes:
    if value < 24:
        return bytes([(major << 5) | value])
    if value < 0x100:
        return bytes([(major << 5) | 24, value])
    if value < 0x10000:
        return bytes([(major << 5) | 25]) + value.to_bytes(2, "big")
    return bytes([(major << 5) | 26]) + value.to_bytes(4, "big")


def _cbor_text(text: str) -> bytes:
    encoded = text.encode("utf-8")
    return _cbor_head(3, len(encoded)) + encoded


def _cbor_cid(cid: CID) -> bytes:
    # DAG-CBOR links are tag 42 over the binary CID with a 0x00 multibase prefix
    encoded = b"\x00" + bytes(cid)
    return _cbor_head(6, CBOR_CID_TAG) + _cbor_head(2, len(encoded)) + encoded


def encode_car_header(roots: Sequence[CID]) -> bytes:
    # DAG-CBOR sorts map keys by length first, so "roots" precedes "version"
    return (
        _cbor_head(5, 2)
        + _cbor_text("roots")
        + _cbor_head(4, len(roots))
        + b"".join(_cbor_cid(root) for root in roots)
        + _cbor_text("version")
        + _cbor_head(0, CAR_VERSION)
    )


def encode_car(roots: Sequence[CID], blocks: Iterable[Block]) -> bytes:
    header = encode_car_header(roots)
    out = bytearray(varint.encode(len(header)) + header)
    for block in blocks:
        section = bytes(block.cid) + block.payload
        out += varint.encode(len(section)) + section
    return bytes(out)
