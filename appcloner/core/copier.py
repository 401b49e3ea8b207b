"""Artifact copier — streams a payload into a clone directory.

The copy goes to a hidden ``.<name>.partial`` file next to the destination
and is renamed onto the final name only after every byte has been written
and synced.  A failed or cancelled copy never leaves a file under the final
name; the temporary file is removed before the error propagates.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from appcloner.core.errors import CopyCancelledError, CopyIOError

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 1024 * 1024

ProgressCallback = Callable[[int, int], None]


class ArtifactCopier:
    """Streamed, all-or-nothing file copy with chunk-level cancellation.

    Parameters
    ----------
    buffer_size:
        Size of the intermediate read buffer in bytes.
    """

    def __init__(self, buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        if buffer_size <= 0:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")
        self._buffer_size = buffer_size

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    @staticmethod
    def partial_path(destination: Path) -> Path:
        """Temporary path used while *destination* is being written."""
        return destination.with_name(f".{destination.name}.partial")

    def copy(
        self,
        source: Path,
        destination: Path,
        *,
        cancel_event: threading.Event | None = None,
        progress: ProgressCallback | None = None,
    ) -> int:
        """Copy *source* to *destination* and return the number of bytes copied.

        Raises
        ------
        CopyCancelledError
            If *cancel_event* is found set; it is checked before each chunk.
        CopyIOError
            On any I/O error, or if the byte count does not match the
            source size observed when the copy started.
        """
        source = Path(source)
        destination = Path(destination)
        tmp_path = self.partial_path(destination)

        try:
            copied = self._stream(source, tmp_path, cancel_event, progress)
            os.replace(tmp_path, destination)
        except CopyIOError:
            tmp_path.unlink(missing_ok=True)
            raise
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise CopyIOError(
                f"Failed to copy {source} to {destination}: {exc}", cause=exc
            ) from exc
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.debug("Copied %d bytes from %s to %s.", copied, source, destination)
        return copied

    def _stream(
        self,
        source: Path,
        tmp_path: Path,
        cancel_event: threading.Event | None,
        progress: ProgressCallback | None,
    ) -> int:
        copied = 0
        with open(source, "rb") as src, open(tmp_path, "wb") as dst:
            total = os.fstat(src.fileno()).st_size
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    raise CopyCancelledError(
                        f"Copy of {source} cancelled after {copied} bytes"
                    )
                chunk = src.read(self._buffer_size)
                if not chunk:
                    break
                dst.write(chunk)
                copied += len(chunk)
                if progress is not None:
                    progress(copied, total)
            dst.flush()
            os.fsync(dst.fileno())

        if copied != total:
            raise CopyIOError(
                f"Incomplete copy of {source}: wrote {copied} of {total} bytes"
            )
        return copied
