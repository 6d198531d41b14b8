"""Split blocks into transaction-sized batches."""

from __future__ import annotations

from typing import List, Sequence

from .cid import Block

MAX_BATCH_ACTIONS = 7
MAX_BATCH_BYTES = 256 * 1024


def split_on_batches(
    blocks: Sequence[Block],
    max_actions: int = MAX_BATCH_ACTIONS,
    max_bytes: int = MAX_BATCH_BYTES,
) -> List[List[bytes]]:
    """Greedily pack block payloads into ordered batches.

    A new batch starts when the current one already holds ``max_actions``
    payloads or already reached ``max_bytes``. The byte check looks at what
    was accumulated so far, so a payload larger than ``max_bytes`` is never
    split and simply fills a batch on its own. Empty input gives ``[[]]``.
    """
    current: List[bytes] = []
    current_bytes = 0
    batches = [current]
    for block in blocks:
        if len(current) >= max_actions or current_bytes >= max_bytes:
            current = []
            current_bytes = 0
            batches.append(current)
        current.append(block.payload)
        current_bytes += len(block.payload)
    return batches
