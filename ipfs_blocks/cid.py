"""Content identifiers and blocks.

A CID names a block by the SHA-256 digest of its payload together with a
content type (raw file bytes or a dag-pb directory node). The binary form is
``varint(version) varint(codec) 0x12 0x20 <digest>`` for CIDv1 and the bare
multihash for CIDv0. The display form is multibase: lower-case base32 with a
``b`` prefix for v1, base58btc for v0.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple, Union

from multiformats import CID as MultiformatsCID
from multiformats import multihash, varint

from .errors import MalformedInputError

SHA2_256 = 0x12
SHA2_256_LENGTH = 32


class ContentType(IntEnum):
    RAW = 0x55
    DIRECTORY = 0x70

    @property
    def codec_name(self) -> str:
        return "raw" if self is ContentType.RAW else "dag-pb"


@dataclass(frozen=True)
class CID:
    version: int
    content_type: ContentType
    digest: bytes

    @property
    def multihash(self) -> bytes:
        return bytes([SHA2_256, SHA2_256_LENGTH]) + self.digest

    def __bytes__(self) -> bytes:
        if self.version == 0:
            return self.multihash
        return (
            varint.encode(self.version)
            + varint.encode(int(self.content_type))
            + self.multihash
        )

    def __str__(self) -> str:
        return cid_to_string(self)


@dataclass(frozen=True)
class Block:
    """A payload together with the CID that names it."""

    cid: CID
    payload: bytes

    @property
    def size(self) -> int:
        return len(self.payload)

    def verify(self) -> bool:
        return compute_hash(self.payload) == self.cid.digest


def compute_hash(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def pack_cid(
    digest: bytes,
    version: int = 1,
    content_type: ContentType = ContentType.RAW,
) -> CID:
    """Build a CID from a raw SHA-256 digest.

    Raises:
        MalformedInputError: the digest is not 32 bytes long, the version is
            unknown, or a CIDv0 was requested for anything but a directory.
    """
    digest = bytes(digest)
    if len(digest) != SHA2_256_LENGTH:
        raise MalformedInputError(
            f"SHA-256 digest must be {SHA2_256_LENGTH} bytes, got {len(digest)}"
        )
    if version not in (0, 1):
        raise MalformedInputError(f"Unsupported CID version {version}")
    content_type = ContentType(content_type)
    if version == 0 and content_type is not ContentType.DIRECTORY:
        raise MalformedInputError("CIDv0 can only name dag-pb nodes")
    return CID(version=version, content_type=content_type, digest=digest)


def cid_for_payload(payload: bytes, content_type: ContentType = ContentType.RAW) -> CID:
    return pack_cid(compute_hash(payload), 1, content_type)


def cid_to_string(cid: CID) -> str:
    mh = multihash.wrap(cid.digest, "sha2-256")
    if cid.version == 0:
        return str(MultiformatsCID("base58btc", 0, "dag-pb", mh))
    return str(MultiformatsCID("base32", cid.version, cid.content_type.codec_name, mh))


def _from_multiformats(decoded: MultiformatsCID) -> CID:
    if decoded.hashfun.name != "sha2-256":
        raise MalformedInputError(f"Unsupported multihash {decoded.hashfun.name}")
    try:
        content_type = ContentType(decoded.codec.code)
    except ValueError as exc:
        raise MalformedInputError(f"Unsupported codec {decoded.codec.name}") from exc
    return pack_cid(bytes(decoded.raw_digest), decoded.version, content_type)


def parse_cid(value: Union[str, bytes]) -> CID:
    """Decode a CID from its display string or its binary form."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        cid, end = read_cid(bytes(value), 0)
        if end != len(value):
            raise MalformedInputError("Trailing bytes after CID")
        return cid
    try:
        decoded = MultiformatsCID.decode(value)
    except (ValueError, KeyError, IndexError) as exc:
        raise MalformedInputError(f"Invalid CID {value!r}: {exc}") from exc
    return _from_multiformats(decoded)


def read_varint(data: bytes, offset: int) -> Tuple[int, int]:
    """Read an unsigned varint at ``offset``; return ``(value, next_offset)``."""
    if offset >= len(data):
        raise MalformedInputError(f"Unexpected end of data at offset {offset}")
    try:
        value, size, _ = varint.decode_raw(memoryview(data)[offset:])
    except ValueError as exc:
        raise MalformedInputError(f"Invalid varint at offset {offset}: {exc}") from exc
    return value, offset + size


def read_cid(data: bytes, offset: int) -> Tuple[CID, int]:
    """Read one binary CID starting at ``offset``; return ``(cid, next_offset)``."""
    if data[offset : offset + 2] == bytes([SHA2_256, SHA2_256_LENGTH]):
        end = offset + 2 + SHA2_256_LENGTH
        if end > len(data):
            raise MalformedInputError("Truncated CIDv0")
        return pack_cid(data[offset + 2 : end], 0, ContentType.DIRECTORY), end

    version, pos = read_varint(data, offset)
    if version != 1:
        raise MalformedInputError(f"Unsupported CID version {version}")
    codec, pos = read_varint(data, pos)
    hash_code, pos = read_varint(data, pos)
    length, pos = read_varint(data, pos)
    if hash_code != SHA2_256 or length != SHA2_256_LENGTH:
        raise MalformedInputError(
            f"Unsupported multihash 0x{hash_code:x} of length {length}"
        )
    end = pos + length
    if end > len(data):
        raise MalformedInputError("Truncated CID digest")
    try:
        content_type = ContentType(codec)
    except ValueError as exc:
        raise MalformedInputError(f"Unsupported codec 0x{codec:x}") from exc
    return pack_cid(data[pos:end], version, content_type), end
