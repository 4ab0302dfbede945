"""Unit tests for the log signature matcher."""

import threading
from pathlib import Path

from capc_e2e.core.matcher import (
    LogSignatureProbe,
    controller_manager_log,
    file_contains,
    path_contains,
    scan,
)
from capc_e2e.core.models import Cancelled, Error, Found, NotFound

SIGNATURE = "No match found for bad-offering"


def write_log(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


class TestPathPredicates:
    """Test filename predicates."""

    def test_path_contains_requires_all_markers(self) -> None:
        """Test predicate matches only when every marker is present."""
        predicate = path_contains("capc-controller-manager", "manager.log")

        assert predicate("/a/capc-controller-manager/logs/manager.log")
        assert not predicate("/a/capi-controller-manager/logs/manager.log")
        assert not predicate("/a/capc-controller-manager/logs/events.log")

    def test_controller_manager_log_predicate(self) -> None:
        """Test the reference predicate selects controller-manager logs."""
        assert controller_manager_log("clusters/bootstrap/capc-controller-manager/manager.log")


class TestScanNotFound:
    """Test scans that do not find the signature."""

    def test_missing_root_is_not_found(self, tmp_path: Path) -> None:
        """Test a log folder that does not exist yet is NotFound, not an error."""
        result = scan(tmp_path / "not-yet", controller_manager_log, SIGNATURE)
        assert result == NotFound()

    def test_no_matching_files_is_not_found(self, tmp_path: Path) -> None:
        """Test zero files matching the predicate is NotFound."""
        write_log(tmp_path, "capi-controller-manager/manager.log", SIGNATURE)

        result = scan(tmp_path, controller_manager_log, SIGNATURE)
        assert result == NotFound()

    def test_absent_substring_in_deep_tree(self, tmp_path: Path) -> None:
        """Test NotFound regardless of tree depth."""
        deep = "/".join(f"level{i}" for i in range(25))
        write_log(tmp_path, f"{deep}/capc-controller-manager/manager.log", "reconciling\n")
        write_log(tmp_path, "capc-controller-manager/manager.log", "still reconciling\n")

        result = scan(tmp_path, controller_manager_log, SIGNATURE)
        assert result == NotFound()

    def test_signature_in_non_matching_file_ignored(self, tmp_path: Path) -> None:
        """Test the signature is only searched in predicate-selected files."""
        write_log(tmp_path, "capc-controller-manager/events.log", SIGNATURE)

        result = scan(tmp_path, controller_manager_log, SIGNATURE)
        assert result == NotFound()


class TestScanFound:
    """Test scans that find the signature."""

    def test_found_reports_matching_file(self, tmp_path: Path) -> None:
        """Test Found carries the path of the matching file."""
        write_log(tmp_path, "other/capc-controller-manager/manager.log", "ok\n")
        target = write_log(
            tmp_path,
            "pod/capc-controller-manager/manager.log",
            f"E1018 reconcile failed: {SIGNATURE}\n",
        )

        result = scan(tmp_path, controller_manager_log, SIGNATURE)
        assert result == Found(str(target))

    def test_injected_signature_found_on_next_scan(self, tmp_path: Path) -> None:
        """Test appending the signature between scans is picked up."""
        log = write_log(tmp_path, "capc-controller-manager/manager.log", "starting\n")
        assert scan(tmp_path, controller_manager_log, SIGNATURE) == NotFound()

        with open(log, "a") as f:
            f.write(f"{SIGNATURE}\n")

        assert scan(tmp_path, controller_manager_log, SIGNATURE) == Found(str(log))

    def test_partial_last_line_matches(self, tmp_path: Path) -> None:
        """Test a signature in an unterminated last line is still found."""
        log = write_log(tmp_path, "capc-controller-manager/manager.log", f"line\n{SIGNATURE}")

        assert scan(tmp_path, controller_manager_log, SIGNATURE) == Found(str(log))

    def test_binary_content_tolerated(self, tmp_path: Path) -> None:
        """Test invalid UTF-8 bytes around the signature do not break matching."""
        log = tmp_path / "capc-controller-manager" / "manager.log"
        log.parent.mkdir(parents=True)
        log.write_bytes(b"\xff\xfe garbage " + SIGNATURE.encode() + b" \x80\n")

        assert scan(tmp_path, controller_manager_log, SIGNATURE) == Found(str(log))


class TestScanErrors:
    """Test error handling during scans."""

    def test_root_not_a_directory_is_error(self, tmp_path: Path) -> None:
        """Test a root that is a file surfaces as Error."""
        root = tmp_path / "manager.log"
        root.write_text(SIGNATURE)

        result = scan(root, controller_manager_log, SIGNATURE)
        assert isinstance(result, Error)
        assert "not a directory" in result.cause

    def test_unreadable_file_is_skipped(self, tmp_path: Path) -> None:
        """Test a matching path that cannot be read does not abort the scan."""
        broken = tmp_path / "a" / "capc-controller-manager" / "manager.log"
        broken.parent.mkdir(parents=True)
        broken.symlink_to(tmp_path / "rotated-away")
        good = write_log(tmp_path, "b/capc-controller-manager/manager.log", SIGNATURE)

        result = scan(tmp_path, controller_manager_log, SIGNATURE)
        assert result == Found(str(good))

    def test_unreadable_file_alone_is_not_found(self, tmp_path: Path) -> None:
        """Test a skipped file does not turn into an error."""
        broken = tmp_path / "capc-controller-manager" / "manager.log"
        broken.parent.mkdir(parents=True)
        broken.symlink_to(tmp_path / "rotated-away")

        assert scan(tmp_path, controller_manager_log, SIGNATURE) == NotFound()


class TestScanCancellation:
    """Test cancellation of a scan in progress."""

    def test_cancelled_scan_returns_cancelled(self, tmp_path: Path) -> None:
        """Test a set cancel event stops the scan before reading files."""
        write_log(tmp_path, "capc-controller-manager/manager.log", SIGNATURE)
        cancel = threading.Event()
        cancel.set()

        result = scan(tmp_path, controller_manager_log, SIGNATURE, cancel_event=cancel)
        assert isinstance(result, Cancelled)


class CountdownEvent(threading.Event):
    """Event that reports itself set after a number of checks."""

    def __init__(self, checks_before_set: int) -> None:
        super().__init__()
        self.remaining = checks_before_set

    def is_set(self) -> bool:
        if self.remaining <= 0:
            return True
        self.remaining -= 1
        return False


class TestChunkedRead:
    """Test chunked reading of large log files."""

    def test_signature_across_chunk_boundary(self, tmp_path: Path) -> None:
        """Test a signature split between two chunks is still found."""
        log = tmp_path / "manager.log"
        log.write_bytes(b"x" * 13 + SIGNATURE.encode() + b"\n")

        assert file_contains(str(log), SIGNATURE.encode(), chunk_size=16)

    def test_absent_signature_in_many_chunks(self, tmp_path: Path) -> None:
        """Test overlapping windows do not produce false matches."""
        log = tmp_path / "manager.log"
        log.write_bytes(b"No match found for \n" * 50)

        assert not file_contains(str(log), SIGNATURE.encode(), chunk_size=7)

    def test_cancel_between_chunks_stops_read(self, tmp_path: Path) -> None:
        """Test cancellation interrupts a large file before its tail is read."""
        log = tmp_path / "manager.log"
        log.write_bytes(b"reconciling\n" * 1000 + SIGNATURE.encode())

        cancel = CountdownEvent(checks_before_set=2)

        assert not file_contains(str(log), SIGNATURE.encode(), cancel_event=cancel, chunk_size=64)

    def test_scan_cancelled_inside_large_file(self, tmp_path: Path) -> None:
        """Test a scan cancelled while reading one file returns Cancelled."""
        write_log(
            tmp_path,
            "capc-controller-manager/manager.log",
            "reconciling\n" * 200_000 + SIGNATURE,
        )
        cancel = CountdownEvent(checks_before_set=2)

        result = scan(tmp_path, controller_manager_log, SIGNATURE, cancel_event=cancel)
        assert isinstance(result, Cancelled)


class TestLogSignatureProbe:
    """Test the value-holding probe."""

    def test_probe_polls_its_folder(self, tmp_path: Path) -> None:
        """Test poll() scans the bound folder for the bound signature."""
        probe = LogSignatureProbe(log_folder=tmp_path, signature=SIGNATURE)
        assert probe.poll() == NotFound()

        log = write_log(tmp_path, "capc-controller-manager/manager.log", SIGNATURE)
        assert probe.poll() == Found(str(log))

    def test_probe_custom_predicate(self, tmp_path: Path) -> None:
        """Test a probe can target other log files."""
        log = write_log(tmp_path, "capi-controller-manager/manager.log", SIGNATURE)
        probe = LogSignatureProbe(
            log_folder=tmp_path,
            signature=SIGNATURE,
            filename_predicate=path_contains("capi-controller-manager"),
        )

        assert probe.poll() == Found(str(log))
