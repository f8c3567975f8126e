"""Artifact routing: output directory first, in-memory ZIP archive as fallback."""

import io
import logging
import threading
import zipfile
from pathlib import Path, PurePosixPath
from typing import List, Optional

__all__ = ['OutputRouter']

logger = logging.getLogger(__name__)


class OutputRouter:
    """Writes artifacts under ``base_dir``, falling back to a ZIP archive.

    An artifact goes to ``base_dir/subfolder/filename``. When no
    ``base_dir`` is set, or writing raises ``OSError``, it is stored in
    an in-memory archive under ``subfolder/filename`` instead. Safe to
    call from several batch workers at once.

    Example usage::

        router = OutputRouter("out")
        router.write(data, "a_processed.jpg", subfolder="web")
        if router.has_archive:
            router.save_archive("out/processed_images.zip")
    """

    def __init__(self, base_dir: Optional[str | Path] = None,
                 archive_name: str = "processed_images.zip"):
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self.archive_name = archive_name
        self.written: List[str] = []
        self.archived: List[str] = []

        self._lock = threading.Lock()
        self._archive_stream: Optional[io.BytesIO] = None
        self._archive: Optional[zipfile.ZipFile] = None

    @staticmethod
    def entry_name(filename: str, subfolder: Optional[str] = None) -> str:
        """Archive/relative path for an artifact, always ``/`` separated."""
        if subfolder:
            return str(PurePosixPath(subfolder.replace("\\", "/")) / filename)
        return filename

    @property
    def has_archive(self) -> bool:
        return bool(self.archived)

    def write(self, data: bytes, filename: str, subfolder: Optional[str] = None) -> str:
        """Store one artifact.

        Returns
        -------
        str
            The file path written, or ``zip:<entry>`` when archived.
        """
        entry = self.entry_name(filename, subfolder)

        if self.base_dir is not None:
            target = self.base_dir / entry
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(data)
                with self._lock:
                    self.written.append(entry)
                logger.debug("Wrote %s (%d bytes)", target, len(data))
                return str(target)
            except OSError as e:
                logger.warning("Could not write %s (%s), adding it to %s",
                               target, e, self.archive_name)

        self._add_to_archive(entry, data)
        return f"zip:{entry}"

    def _add_to_archive(self, entry: str, data: bytes) -> None:
        with self._lock:
            if self._archive is None:
                self._archive_stream = io.BytesIO()
                self._archive = zipfile.ZipFile(self._archive_stream, "w", zipfile.ZIP_DEFLATED)
            self._archive.writestr(entry, data)
            self.archived.append(entry)
        logger.debug("Archived %s (%d bytes)", entry, len(data))

    def archive_bytes(self) -> Optional[bytes]:
        """Finished ZIP archive, or None when nothing was archived.

        Finalizes the archive; later writes that need it start a new one
        containing only the later entries.
        """
        with self._lock:
            if self._archive is None:
                return None
            self._archive.close()
            data = self._archive_stream.getvalue()
            self._archive = None
            self._archive_stream = None
        return data

    def save_archive(self, path: Optional[str | Path] = None) -> Optional[Path]:
        """Write the archive to ``path`` (default ``base_dir/archive_name``).

        Returns
        -------
        Path or None
            Where the archive was written, None if there was nothing to write.
        """
        data = self.archive_bytes()
        if data is None:
            return None
        if path is None:
            path = (self.base_dir or Path(".")) / self.archive_name
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Archive saved: %s (%d entries)", path, len(self.archived))
        return path
