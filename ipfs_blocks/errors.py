"""Exception types raised by the block pipeline."""

from __future__ import annotations

from typing import Optional


class BlockUploadError(Exception):
    """Base class for every error raised by :mod:`ipfs_blocks`."""


class MalformedInputError(BlockUploadError, ValueError):
    """Input bytes or identifiers that cannot be decoded."""


class ProbeProtocolError(BlockUploadError, RuntimeError):
    """The gateway answered an existence check with an unexpected status."""

    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"Unexpected status code {status_code} for {url}")
        self.status_code = status_code
        self.url = url


class SubmissionFatalError(BlockUploadError, RuntimeError):
    """A batch transaction failed in a way that must abort the upload."""

    def __init__(self, batch_index: int, detail: Optional[str] = None) -> None:
        message = f"Transaction for batch {batch_index} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.batch_index = batch_index
        self.detail = detail
