import hashlib

import pytest

from ipfs_blocks.cid import (
    CID,
    Block,
    ContentType,
    cid_for_payload,
    cid_to_string,
    pack_cid,
    parse_cid,
    read_cid,
)
from ipfs_blocks.errors import MalformedInputError

EMPTY_RAW_CID = "bafkreihdwdcefgh4dqkjv67uzcmw7ojee6xedzdetojuzjevtenxquvyku"
EMPTY_DIR_CID = "bafybeiczsscdsbs7ffqz55asqdf3smv6klcw3gofszvwlyarci47bgf354"
EMPTY_DIR_CID_V0 = "QmUNLLsPACCz1vLxQVkXqqLX5R1X345qqfHbsf67hvA3Nn"
EMPTY_DIR_NODE = b"\x0a\x02\x08\x01"


def test_pack_raw_cid_of_empty_payload():
    cid = pack_cid(hashlib.sha256(b"").digest(), 1, ContentType.RAW)
    assert cid_to_string(cid) == EMPTY_RAW_CID
    assert str(cid) == EMPTY_RAW_CID


def test_pack_directory_cid():
    digest = hashlib.sha256(EMPTY_DIR_NODE).digest()
    assert str(pack_cid(digest, 1, ContentType.DIRECTORY)) == EMPTY_DIR_CID
    assert str(pack_cid(digest, 0, ContentType.DIRECTORY)) == EMPTY_DIR_CID_V0


def test_binary_layout():
    digest = bytes(range(32))
    cid = pack_cid(digest, 1, ContentType.RAW)
    assert bytes(cid) == b"\x01\x55\x12\x20" + digest
    v0 = pack_cid(digest, 0, ContentType.DIRECTORY)
    assert bytes(v0) == b"\x12\x20" + digest


@pytest.mark.parametrize("length", [0, 20, 31, 33, 64])
def test_pack_rejects_bad_digest_length(length):
    with pytest.raises(MalformedInputError):
        pack_cid(b"\x00" * length)


def test_pack_rejects_unknown_version_and_raw_v0():
    with pytest.raises(MalformedInputError):
        pack_cid(b"\x00" * 32, 2)
    with pytest.raises(MalformedInputError):
        pack_cid(b"\x00" * 32, 0, ContentType.RAW)


def test_equality_covers_every_field():
    digest = b"\x01" * 32
    assert pack_cid(digest) == CID(1, ContentType.RAW, digest)
    assert pack_cid(digest) != pack_cid(digest, 1, ContentType.DIRECTORY)
    assert pack_cid(digest, 0, ContentType.DIRECTORY) != pack_cid(
        digest, 1, ContentType.DIRECTORY
    )
    assert len({pack_cid(digest), pack_cid(digest)}) == 1


@pytest.mark.parametrize(
    "cid",
    [
        pack_cid(b"\x07" * 32, 1, ContentType.RAW),
        pack_cid(b"\x07" * 32, 1, ContentType.DIRECTORY),
        pack_cid(b"\x07" * 32, 0, ContentType.DIRECTORY),
    ],
)
def test_parse_inverts_display_and_binary_forms(cid):
    assert parse_cid(cid_to_string(cid)) == cid
    assert parse_cid(bytes(cid)) == cid


@pytest.mark.parametrize("text", ["", "not-a-cid", EMPTY_RAW_CID[:-5]])
def test_parse_rejects_garbage(text):
    with pytest.raises(MalformedInputError):
        parse_cid(text)


def test_parse_rejects_trailing_bytes():
    with pytest.raises(MalformedInputError):
        parse_cid(bytes(pack_cid(b"\x00" * 32)) + b"\x00")


def test_read_cid_from_middle_of_buffer():
    cid = cid_for_payload(b"payload")
    data = b"xx" + bytes(cid) + b"payload"
    parsed, offset = read_cid(data, 2)
    assert parsed == cid
    assert data[offset:] == b"payload"


def test_read_cid_rejects_truncated_digest():
    data = bytes(cid_for_payload(b"payload"))[:-1]
    with pytest.raises(MalformedInputError):
        read_cid(data, 0)


def test_block_verify():
    block = Block(cid=cid_for_payload(b"hi"), payload=b"hi")
    assert block.verify()
    assert block.size == 2
    assert not Block(cid=block.cid, payload=b"ho").verify()
