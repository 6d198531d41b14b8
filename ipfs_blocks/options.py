from __future__ import annotations

import dataclasses
import logging
import os
from typing import Any, Callable, Optional, Sequence

GATEWAY_URLS = {
    "mainnet": "https://ipfs.web4.near.page",
    "testnet": "https://ipfs.web4.testnet.page",
}
DEFAULT_GATEWAY_URL = GATEWAY_URLS["mainnet"]
DEFAULT_TIMEOUT = 2.5
DEFAULT_RETRY_COUNT = 3
DEFAULT_THROTTLE_INTERVAL = 0.025
DEFAULT_MAX_CONCURRENT_PROBES = 16

_package_logger = logging.getLogger("ipfs_blocks")


@dataclasses.dataclass(slots=True, frozen=True)
class UploadProgress:
    current_blocks: int
    total_blocks: int


def _log_info(message: str) -> None:
    _package_logger.info(message)


def _ignore_progress(progress: UploadProgress) -> None:
    pass


def _missing_sender(payloads: Sequence[bytes]) -> Any:
    raise NotImplementedError("transaction_sender not configured")


def gateway_url_for_network(network: str, custom: Optional[str] = None) -> str:
    if network in GATEWAY_URLS:
        return GATEWAY_URLS[network]
    if custom:
        return custom
    raise ValueError(
        f"Network must be one of {sorted(GATEWAY_URLS)} or a custom gateway URL must be given"
    )


@dataclasses.dataclass(slots=True)
class UploadOptions:
    """Every knob of an upload run.

    Attributes:
        log: Receives one human readable message per event.
        status_callback: Called with an :class:`UploadProgress` after each batch.
        timeout: Seconds allowed for a single existence check.
        retry_count: Existence check attempts per block; only timeouts retry.
        gateway_url: Base URL answering ``HEAD /ipfs/<cid>``.
        transaction_sender: Submits one batch of payloads; may return a
            ``SubmissionResult`` or raise.
        throttle_interval: Minimum seconds between two probe launches.
        max_concurrent_probes: Upper bound on probes in flight.
    """

    log: Callable[[str], None] = _log_info
    status_callback: Callable[[UploadProgress], None] = _ignore_progress
    timeout: float = DEFAULT_TIMEOUT
    retry_count: int = DEFAULT_RETRY_COUNT
    gateway_url: str = DEFAULT_GATEWAY_URL
    transaction_sender: Callable[[Sequence[bytes]], Any] = _missing_sender
    throttle_interval: float = DEFAULT_THROTTLE_INTERVAL
    max_concurrent_probes: int = DEFAULT_MAX_CONCURRENT_PROBES

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.retry_count < 1:
            raise ValueError("retry_count must be at least 1")
        if self.throttle_interval < 0:
            raise ValueError("throttle_interval cannot be negative")
        if self.max_concurrent_probes < 1:
            raise ValueError("max_concurrent_probes must be at least 1")
        self.gateway_url = self.gateway_url.rstrip("/")

    @classmethod
    def from_env(cls, **overrides: Any) -> "UploadOptions":
        """Build options from ``IPFS_*`` environment variables.

        Keyword arguments take precedence over the environment.
        """
        values: dict[str, Any] = {}
        gateway_url = os.getenv("IPFS_GATEWAY_URL")
        network = os.getenv("IPFS_NETWORK")
        if network:
            values["gateway_url"] = gateway_url_for_network(network, gateway_url)
        elif gateway_url:
            values["gateway_url"] = gateway_url
        if os.getenv("IPFS_PROBE_TIMEOUT"):
            values["timeout"] = float(os.environ["IPFS_PROBE_TIMEOUT"])
        if os.getenv("IPFS_PROBE_RETRIES"):
            values["retry_count"] = int(os.environ["IPFS_PROBE_RETRIES"])
        values.update(overrides)
        return cls(**values)
