import pytest

from ipfs_blocks.cid import cid_for_payload
from ipfs_blocks.dag_pb import DIRECTORY_DATA, PBLink, decode_directory, encode_directory
from ipfs_blocks.errors import MalformedInputError


@pytest.fixture
def link():
    return PBLink(name="a.txt", cid=cid_for_payload(b"hi"), size=2)


def test_empty_directory_is_just_the_marker():
    assert encode_directory([]) == b"\x0a\x02\x08\x01"


def test_single_link_layout(link):
    encoded = encode_directory([link])
    cid_bytes = bytes(link.cid)
    expected_link = (
        b"\x0a" + bytes([len(cid_bytes)]) + cid_bytes
        + b"\x12\x05a.txt"
        + b"\x18\x02"
    )
    assert encoded == b"\x12" + bytes([len(expected_link)]) + expected_link + b"\x0a\x02\x08\x01"


def test_links_are_sorted_by_name():
    links = [
        PBLink(name=name, cid=cid_for_payload(name.encode()), size=len(name))
        for name in ["b", "a", "B", "ab"]
    ]
    decoded, _ = decode_directory(encode_directory(links))
    assert [l.name for l in decoded] == ["B", "a", "ab", "b"]
    assert encode_directory(links) == encode_directory(reversed(links))


def test_decode_roundtrip(link):
    other = PBLink(name="é.bin", cid=cid_for_payload(b"x" * 500), size=500)
    links, data = decode_directory(encode_directory([other, link]))
    assert links == [link, other]
    assert data == DIRECTORY_DATA


def test_large_sizes_use_multibyte_varints():
    big = PBLink(name="big", cid=cid_for_payload(b"big"), size=10 * 1024 * 1024)
    links, _ = decode_directory(encode_directory([big]))
    assert links[0].size == 10 * 1024 * 1024


def test_decode_rejects_truncated_node(link):
    encoded = encode_directory([link])
    with pytest.raises(MalformedInputError):
        decode_directory(encoded[:-3])
