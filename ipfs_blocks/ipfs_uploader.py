from __future__ import annotations

import dataclasses
import enum
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Sequence, Tuple, Union

from .batching import split_on_batches
from .car import read_car
from .cid import Block, cid_to_string
from .errors import SubmissionFatalError
from .gateway import probe_blocks
from .merkle_tree import DirectoryTree, FileEntry, read_files_recursively
from .options import UploadOptions, UploadProgress

logger = logging.getLogger(__name__)

# Raised by the ledger the first time a target account receives blocks; the
# payloads are still recorded, so these are not failures.
EXPECTED_UPLOAD_ERRORS = (
    "Cannot find contract code for account",
    "Contract method is not found",
    "MethodNotFound",
    "CodeDoesNotExist",
)


class SubmissionStatus(enum.Enum):
    SUCCESS = "success"
    BENIGN_FAILURE = "benign_failure"
    FATAL_FAILURE = "fatal_failure"


@dataclasses.dataclass(slots=True, frozen=True)
class SubmissionResult:
    """Outcome of sending one batch, classified at the sender boundary."""

    status: SubmissionStatus
    detail: str = ""
    error: Optional[BaseException] = None


def is_expected_upload_error(error: BaseException) -> bool:
    message = str(error)
    kind = getattr(error, "kind", None)
    if kind is not None:
        message = f"{message} {kind}"
    return any(marker in message for marker in EXPECTED_UPLOAD_ERRORS)


def submit_batch(
    sender: Callable[[Sequence[bytes]], Any], payloads: Sequence[bytes]
) -> SubmissionResult:
    """Send one batch and turn whatever happens into a :class:`SubmissionResult`."""
    try:
        outcome = sender(list(payloads))
    except Exception as exc:
        status = (
            SubmissionStatus.BENIGN_FAILURE
            if is_expected_upload_error(exc)
            else SubmissionStatus.FATAL_FAILURE
        )
        return SubmissionResult(status=status, detail=str(exc), error=exc)
    if isinstance(outcome, SubmissionResult):
        return outcome
    return SubmissionResult(status=SubmissionStatus.SUCCESS)


class IPFSUploader:
    """Uploads content-addressed blocks through a caller supplied transaction sender.

    Blocks the gateway already serves are skipped, the rest are packed into
    batches and submitted one transaction at a time.
    """

    def __init__(self, options: Optional[UploadOptions] = None, **overrides: Any) -> None:
        if options is None:
            options = UploadOptions(**overrides)
        elif overrides:
            options = dataclasses.replace(options, **overrides)
        self.options = options

    def upload_blocks(self, blocks: Sequence[Block]) -> UploadProgress:
        options = self.options
        already_uploaded = probe_blocks(blocks, options)
        new_blocks = [
            block for block, uploaded in zip(blocks, already_uploaded) if not uploaded
        ]
        batches = [batch for batch in split_on_batches(new_blocks) if batch]
        total_blocks = sum(len(batch) for batch in batches)
        logger.debug(
            "%d of %d blocks need uploading in %d batches",
            total_blocks,
            len(blocks),
            len(batches),
        )

        current_blocks = 0
        for index, batch in enumerate(batches):
            result = submit_batch(options.transaction_sender, batch)
            if result.status is SubmissionStatus.FATAL_FAILURE:
                raise SubmissionFatalError(index, result.detail) from result.error
            if result.status is SubmissionStatus.BENIGN_FAILURE:
                logger.debug("Ignoring expected error for batch %d: %s", index, result.detail)

            current_blocks += len(batch)
            options.log(f"Uploaded {current_blocks} / {total_blocks} blocks to NEARFS")
            options.status_callback(
                UploadProgress(current_blocks=current_blocks, total_blocks=total_blocks)
            )
        return UploadProgress(current_blocks=current_blocks, total_blocks=total_blocks)

    def upload_files(self, files: Iterable[Union[FileEntry, Tuple[str, bytes]]]) -> str:
        """Build the directory DAG for ``files``, upload it and return the root CID."""
        log = self.options.log
        tree = DirectoryTree(files)
        root_cid = tree.finalize()
        log(f"rootCid {cid_to_string(root_cid)}")
        for block in tree.blocks:
            log(f"block {cid_to_string(block.cid)}")
        self.upload_blocks(tree.blocks)
        return cid_to_string(root_cid)

    def upload_car(self, car_data: bytes) -> UploadProgress:
        self.options.log("Uploading CAR file to NEAR File System...")
        return self.upload_blocks(read_car(car_data))

    def upload_path(self, target: Path) -> str:
        """Upload a single file or a whole directory tree from disk."""
        if not target.exists():
            raise FileNotFoundError(target)
        if target.is_dir():
            files = read_files_recursively(target)
        else:
            files = [FileEntry(name=target.name, content=target.read_bytes())]
        return self.upload_files(files)


def upload_blocks(blocks: Sequence[Block], options: Optional[UploadOptions] = None) -> UploadProgress:
    return IPFSUploader(options).upload_blocks(blocks)


def upload_files(
    files: Iterable[Union[FileEntry, Tuple[str, bytes]]],
    options: Optional[UploadOptions] = None,
) -> str:
    return IPFSUploader(options).upload_files(files)


def upload_car(car_data: bytes, options: Optional[UploadOptions] = None) -> UploadProgress:
    return IPFSUploader(options).upload_car(car_data)
