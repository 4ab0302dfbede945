"""Log signature matching over a directory of append-only log files."""

import logging
import os
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from capc_e2e.constants import (
    CONTROLLER_COMPONENT_MARKER,
    MANAGER_LOG_MARKER,
    SCAN_CHUNK_BYTES,
)
from capc_e2e.core.models import Cancelled, Error, Found, NotFound, PollResult

logger = logging.getLogger(__name__)

FilenamePredicate = Callable[[str], bool]


class _WalkError(Exception):
    def __init__(self, cause: OSError) -> None:
        super().__init__(str(cause))
        self.cause = cause


def path_contains(*markers: str) -> FilenamePredicate:
    """Build a predicate matching paths that contain every marker.

    Parameters
    ----------
    *markers : str
        Substrings that must all occur in the path

    Returns
    -------
    FilenamePredicate
        Predicate over file paths
    """

    def predicate(path: str) -> bool:
        return all(marker in path for marker in markers)

    return predicate


controller_manager_log = path_contains(CONTROLLER_COMPONENT_MARKER, MANAGER_LOG_MARKER)
"""Predicate selecting infrastructure controller-manager logs."""


def iter_files(root_dir: Path) -> Iterator[str]:
    """Lazily yield file paths under root_dir.

    Raises ``_WalkError`` when the root itself cannot be listed. Errors on
    nested directories (removed or rotated mid-walk) are skipped.
    """
    root = str(root_dir)

    def on_error(error: OSError) -> None:
        if os.path.normpath(error.filename or "") == os.path.normpath(root):
            raise _WalkError(error)
        logger.debug("Skipping unreadable directory %s: %s", error.filename, error)

    for dirpath, _dirnames, filenames in os.walk(root, onerror=on_error):
        for filename in filenames:
            yield os.path.join(dirpath, filename)


def file_contains(
    path: str,
    needle: bytes,
    cancel_event: threading.Event | None = None,
    chunk_size: int = SCAN_CHUNK_BYTES,
) -> bool:
    """Check whether a file contains needle; read errors count as no match.

    The file is read in chunks that overlap by ``len(needle) - 1`` bytes, so
    a needle split across a chunk boundary is still found. A set
    cancel_event stops the read and counts as no match.
    """
    overlap = max(len(needle) - 1, 0)
    tail = b""
    try:
        with open(path, "rb") as f:
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    return False
                chunk = f.read(chunk_size)
                if not chunk:
                    return False
                window = tail + chunk
                if needle in window:
                    return True
                tail = window[-overlap:] if overlap else b""
    except OSError as e:
        logger.debug("Skipping unreadable log file %s: %s", path, e)
        return False


def scan(
    root_dir: str | Path,
    filename_predicate: FilenamePredicate,
    substring: str,
    cancel_event: threading.Event | None = None,
) -> PollResult:
    """Scan log files under root_dir for substring.

    Parameters
    ----------
    root_dir : str | Path
        Root of the log tree
    filename_predicate : FilenamePredicate
        Selects which file paths are searched
    substring : str
        Text to search for
    cancel_event : threading.Event | None
        When set, the scan stops before the next file or chunk and returns
        Cancelled

    Returns
    -------
    PollResult
        ``Found(path)`` for the first file containing substring (walk order
        is unspecified), ``NotFound`` when no file matches or the root does
        not exist yet, ``Error`` when the root cannot be walked, or
        ``Cancelled``
    """
    root = Path(root_dir)

    if not root.exists():
        logger.debug("Log folder %s does not exist yet", root)
        return NotFound()

    if not root.is_dir():
        return Error(f"log folder {root} is not a directory")

    needle = substring.encode("utf-8")

    try:
        for path in iter_files(root):
            if cancel_event is not None and cancel_event.is_set():
                return Cancelled("scan interrupted")

            if not filename_predicate(path):
                continue

            if file_contains(path, needle, cancel_event=cancel_event):
                logger.debug("Signature %r found in %s", substring, path)
                return Found(path)

            if cancel_event is not None and cancel_event.is_set():
                return Cancelled("scan interrupted")
    except _WalkError as e:
        logger.warning("Failed to walk log folder %s: %s", root, e.cause)
        return Error(f"failed to walk {root}: {e.cause}")

    return NotFound()


@dataclass(frozen=True)
class LogSignatureProbe:
    """Probe that scans a log folder for one expected signature.

    Attributes
    ----------
    log_folder : Path
        Root of the log tree written by the management cluster
    signature : str
        Expected substring
    filename_predicate : FilenamePredicate
        Selects which log files are searched
    cancel_event : threading.Event | None
        Shared cancellation event, checked between files and chunks
    """

    log_folder: Path
    signature: str
    filename_predicate: FilenamePredicate = controller_manager_log
    cancel_event: threading.Event | None = None

    def poll(self) -> PollResult:
        return scan(
            self.log_folder,
            self.filename_predicate,
            self.signature,
            cancel_event=self.cancel_event,
        )
