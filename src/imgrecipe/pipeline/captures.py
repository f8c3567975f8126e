"""Aggregation capture set.

Frames captured by aggregation steps across a batch, keyed by
aggregation id and batch input index. Workers may add frames in any
order; ``frames()`` always returns them in input order.
"""

import logging
import threading
from typing import Dict, List

from imgrecipe.contracts import assert_capture_order

__all__ = ['CaptureSet']

logger = logging.getLogger(__name__)


class CaptureSet:
    """Concurrency-safe ``aggregation_id -> [frame bytes]`` accumulator.

    Owned by one batch run and handed to the compositor once, after the
    last image.

    Examples
    --------
    >>> captures = CaptureSet()
    >>> captures.add("sheet", 1, b"...second...")
    >>> captures.add("sheet", 0, b"...first...")
    >>> captures.frames("sheet")
    [b'...first...', b'...second...']
    """

    def __init__(self):
        self._frames: Dict[str, Dict[int, bytes]] = {}
        self._lock = threading.Lock()

    def add(self, aggregation_id: str, input_index: int, data: bytes) -> None:
        with self._lock:
            by_index = self._frames.setdefault(aggregation_id, {})
            if input_index in by_index:
                logger.warning("Replacing capture for '%s' at input %d", aggregation_id, input_index)
            by_index[input_index] = data

    def indices(self, aggregation_id: str) -> List[int]:
        with self._lock:
            return sorted(self._frames.get(aggregation_id, {}))

    def frames(self, aggregation_id: str) -> List[bytes]:
        """Captured frames for ``aggregation_id`` in batch input order."""
        with self._lock:
            by_index = dict(self._frames.get(aggregation_id, {}))
        order = sorted(by_index)
        assert_capture_order(aggregation_id, order)
        return [by_index[i] for i in order]

    def aggregation_ids(self) -> List[str]:
        with self._lock:
            return list(self._frames)

    def clear(self) -> None:
        with self._lock:
            self._frames.clear()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(v) for v in self._frames.values())

    def __contains__(self, aggregation_id: str) -> bool:
        with self._lock:
            return bool(self._frames.get(aggregation_id))
