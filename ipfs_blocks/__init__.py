"""Content-addressed block building and upload tooling."""

from .batching import MAX_BATCH_ACTIONS, MAX_BATCH_BYTES, split_on_batches
from .car import encode_car, read_car
from .cid import CID, Block, ContentType, cid_to_string, compute_hash, pack_cid, parse_cid
from .dag_pb import PBLink, decode_directory, encode_directory
from .errors import (
    BlockUploadError,
    MalformedInputError,
    ProbeProtocolError,
    SubmissionFatalError,
)
from .gateway import is_already_uploaded, probe_blocks
from .ipfs_uploader import (
    IPFSUploader,
    SubmissionResult,
    SubmissionStatus,
    is_expected_upload_error,
    upload_blocks,
    upload_car,
    upload_files,
)
from .merkle_tree import DirectoryTree, FileEntry, build_directory_tree
from .options import UploadOptions, UploadProgress, gateway_url_for_network

__all__ = [
    "MAX_BATCH_ACTIONS",
    "MAX_BATCH_BYTES",
    "split_on_batches",
    "encode_car",
    "read_car",
    "CID",
    "Block",
    "ContentType",
    "cid_to_string",
    "compute_hash",
    "pack_cid",
    "parse_cid",
    "PBLink",
    "decode_directory",
    "encode_directory",
    "BlockUploadError",
    "MalformedInputError",
    "ProbeProtocolError",
    "SubmissionFatalError",
    "is_already_uploaded",
    "probe_blocks",
    "IPFSUploader",
    "SubmissionResult",
    "SubmissionStatus",
    "is_expected_upload_error",
    "upload_blocks",
    "upload_car",
    "upload_files",
    "DirectoryTree",
    "FileEntry",
    "build_directory_tree",
    "UploadOptions",
    "UploadProgress",
    "gateway_url_for_network",
]
