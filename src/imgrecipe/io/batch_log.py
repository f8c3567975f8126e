"""CSV batch log: one row per processed image."""

import logging
import math
import threading
from typing import Any, Dict, List, Mapping, Optional, Tuple, TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from imgrecipe.io.output_router import OutputRouter

__all__ = ['BatchLog', 'PRIORITY_COLUMNS']

logger = logging.getLogger(__name__)

PRIORITY_COLUMNS = ['filename', 'date', 'width', 'height', 'gps', 'people']

_PEOPLE_ALIASES = ('face_count', 'faceCount')


def _format_value(value: Any) -> str:
    """Render one cell. Missing values become empty cells."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, Mapping) and "lat" in value and "lon" in value:
        return f"{value['lat']}, {value['lon']}"
    return str(value)


class BatchLog:
    """Accumulates log rows and renders them as CSV.

    Columns are ``PRIORITY_COLUMNS`` followed by every other key in the
    order it was first seen. Values containing a comma, quote or newline
    are quoted, with quotes doubled.

    Rows added with an ``index`` are rendered in index order, so a batch
    processed by several workers logs its images in input order.

    Examples
    --------
    >>> log = BatchLog()
    >>> log.add_entry({"filename": "a.jpg", "width": 4, "height": 2, "gps": {"lat": 1.5, "lon": 2}})
    >>> print(log.to_csv())
    filename,date,width,height,gps,people
    a.jpg,,4,2,"1.5, 2",
    """

    def __init__(self, filename: str = "batch_log.csv"):
        self.filename = filename
        self._entries: List[Tuple[int, Dict[str, Any]]] = []
        self._lock = threading.Lock()

    @staticmethod
    def make_entry(filename: str, width: int, height: int,
                   metadata: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Build a row from an image's name, final size and metadata."""
        entry: Dict[str, Any] = {"filename": filename, "width": width, "height": height}
        for key, value in (metadata or {}).items():
            if key in ("width", "height"):
                continue
            entry[key] = value
        return entry

    def add_entry(self, entry: Mapping[str, Any], index: Optional[int] = None) -> None:
        """Add a row. ``index`` places it by input position; otherwise it goes last."""
        row = dict(entry)
        for alias in _PEOPLE_ALIASES:
            if alias in row:
                count = row.pop(alias)
                row.setdefault("people", count)
        with self._lock:
            key = index if index is not None else len(self._entries)
            self._entries.append((key, row))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def rows(self) -> List[Dict[str, Any]]:
        """Rows in index order (stable for equal indices)."""
        with self._lock:
            entries = list(self._entries)
        return [row for _, row in sorted(entries, key=lambda item: item[0])]

    def columns(self) -> List[str]:
        columns = list(PRIORITY_COLUMNS)
        for entry in self.rows():
            for key in entry:
                if key not in columns:
                    columns.append(key)
        return columns

    def to_frame(self) -> pd.DataFrame:
        """Rows as a DataFrame of rendered strings."""
        columns = self.columns()
        rows = [[_format_value(entry.get(col)) for col in columns] for entry in self.rows()]
        return pd.DataFrame(rows, columns=columns, dtype=str)

    def to_csv(self) -> str:
        """CSV text with rows joined by ``\\n``; empty string when no rows."""
        if not self._entries:
            return ""
        text = self.to_frame().to_csv(index=False, lineterminator="\n")
        return text[:-1] if text.endswith("\n") else text

    def write(self, router: "OutputRouter") -> Optional[str]:
        """Write the CSV through ``router``; returns where it went."""
        if not self._entries:
            logger.info("Batch log is empty, not writing %s", self.filename)
            return None
        location = router.write(self.to_csv().encode("utf-8"), self.filename)
        logger.info("Batch log written: %s (%d rows)", location, len(self._entries))
        return location
