"""Existence checks against an IPFS gateway."""

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import List, Sequence

import requests

from .cid import CID, Block, cid_to_string
from .errors import ProbeProtocolError
from .options import UploadOptions

logger = logging.getLogger(__name__)


def gateway_lookup_url(cid: CID, gateway_url: str) -> str:
    return f"{gateway_url.rstrip('/')}/ipfs/{cid_to_string(cid)}"


def is_already_uploaded(cid: CID, options: UploadOptions) -> bool:
    """Ask the gateway whether ``cid`` is already stored.

    Only timeouts are retried. A 404 answers the question for good, and any
    status other than 200/404 raises :class:`ProbeProtocolError`. Running out
    of attempts counts as "not uploaded".
    """
    url = gateway_lookup_url(cid, options.gateway_url)
    for attempt in range(1, options.retry_count + 1):
        try:
            response = requests.head(url, timeout=options.timeout)
        except requests.exceptions.Timeout:
            options.log(f"Timeout while checking {url}")
            logger.debug("Attempt %d/%d for %s timed out", attempt, options.retry_count, url)
            continue
        if response.status_code == 200:
            options.log(f"Block {cid_to_string(cid)} already exists on chain, skipping")
            return True
        if response.status_code == 404:
            return False
        raise ProbeProtocolError(response.status_code, url)
    return False


def _raise_first_failure(futures: Sequence[Future]) -> None:
    for future in futures:
        if future.done() and not future.cancelled() and future.exception() is not None:
            raise future.exception()


def _wait_before_launch(futures: Sequence[Future], interval: float) -> None:
    """Hold the next launch for ``interval`` seconds, failing fast on a probe error."""
    deadline = time.monotonic() + interval
    while True:
        _raise_first_failure(futures)
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return
        pending = [future for future in futures if not future.done()]
        if pending:
            wait(pending, timeout=remaining, return_when=FIRST_EXCEPTION)
        else:
            time.sleep(remaining)


def probe_blocks(blocks: Sequence[Block], options: UploadOptions) -> List[bool]:
    """Probe every block concurrently, spacing launches by the throttle interval.

    Results are returned in input order. The first fatal probe error stops
    further launches, cancels the probes that have not started yet and is
    re-raised.
    """
    if not blocks:
        return []
    futures: List[Future] = []
    with ThreadPoolExecutor(
        max_workers=min(options.max_concurrent_probes, len(blocks)),
        thread_name_prefix="ipfs-probe",
    ) as pool:
        try:
            for index, block in enumerate(blocks):
                if index:
                    _wait_before_launch(futures, options.throttle_interval)
                futures.append(pool.submit(is_already_uploaded, block.cid, options))
            wait(futures, return_when=FIRST_EXCEPTION)
            _raise_first_failure(futures)
            return [future.result() for future in futures]
        except BaseException:
            for future in futures:
                future.cancel()
            raise
