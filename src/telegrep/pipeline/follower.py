"""Follow a growing log file, yielding lines appended after startup.

The follower assumes the file is append-only for the life of the run.
Truncation and rotation are not detected: if the file is replaced the
follower keeps reading the old handle and sees no new data.
"""

import io
import os
from collections.abc import Iterator
from pathlib import Path

import structlog

log = structlog.get_logger()


class FollowerError(Exception):
    """Raised when the monitored file cannot be opened."""

    pass


class Follower:
    """Incremental reader over an open log file.

    The cursor starts at end of file, so content that existed before
    open() is never replayed.
    """

    def __init__(self, handle: io.BufferedReader, path: Path):
        self._handle = handle
        self.path = path
        # Bytes of a line whose newline hasn't been written yet
        self._partial = b""

    @classmethod
    def open(cls, path: Path | str) -> "Follower":
        """Open a log file positioned at its end.

        Raises:
            FollowerError: If the file cannot be opened
        """
        path = Path(path)
        try:
            handle = open(path, "rb")
        except OSError as e:
            log.error("Cannot open log file", path=str(path), error=str(e))
            raise FollowerError(f"cannot open log file {path}: {e}") from e

        handle.seek(0, os.SEEK_END)
        log.info("Following log file", path=str(path), offset=handle.tell())
        return cls(handle, path)

    def next_line(self) -> str | None:
        """Return the next complete line, or None if no new data yet."""
        chunk = self._handle.readline()
        if not chunk:
            return None

        if not chunk.endswith(b"\n"):
            self._partial += chunk
            return None

        data = self._partial + chunk
        self._partial = b""
        return data.rstrip(b"\r\n").decode("utf-8", errors="replace")

    def lines(self) -> Iterator[str | None]:
        """Endless stream of next_line() results, None meaning "nothing yet"."""
        while True:
            yield self.next_line()

    @property
    def offset(self) -> int:
        return self._handle.tell()

    def close(self) -> None:
        self._handle.close()

    def __enter__(self) -> "Follower":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
