"""Unit tests for binstrings/state.py: AnalyzerState, path sandbox, and report cache."""
import time
import threading
import pytest

from binstrings.state import AnalyzerState, MAX_CACHED_REPORTS
from binstrings.parsers.extract import ExtractionReport, ExtractedString


# ---------------------------------------------------------------------------
# AnalyzerState basics
# ---------------------------------------------------------------------------

class TestAnalyzerState:
    def test_initial_state(self):
        s = AnalyzerState()
        assert s.filepath is None
        assert s.mode == "auto"
        assert s.raw_base == 0
        assert s.allowed_paths is None

    def test_touch_updates_last_active(self):
        s = AnalyzerState()
        t1 = s.last_active
        time.sleep(0.01)
        s.touch()
        assert s.last_active > t1


# ---------------------------------------------------------------------------
# Path sandboxing
# ---------------------------------------------------------------------------

class TestCheckPathAllowed:
    def test_no_restriction(self):
        s = AnalyzerState()
        s.check_path_allowed("/any/path")

    def test_allowed_path(self, tmp_path):
        s = AnalyzerState()
        s.allowed_paths = [str(tmp_path)]
        test_file = tmp_path / "sample.elf"
        test_file.write_bytes(b"\x7fELF")
        s.check_path_allowed(str(test_file))

    def test_disallowed_path(self, tmp_path):
        s = AnalyzerState()
        s.allowed_paths = [str(tmp_path / "allowed")]
        with pytest.raises(RuntimeError, match="Access denied"):
            s.check_path_allowed("/etc/passwd")

    def test_traversal_blocked(self, tmp_path):
        allowed = tmp_path / "allowed"
        allowed.mkdir()
        s = AnalyzerState()
        s.allowed_paths = [str(allowed)]
        with pytest.raises(RuntimeError, match="Access denied"):
            s.check_path_allowed(str(allowed / ".." / ".." / "etc" / "passwd"))

    def test_symlink_outside_blocked(self, tmp_path):
        allowed = tmp_path / "allowed"
        allowed.mkdir()
        outside = tmp_path / "outside.bin"
        outside.write_bytes(b"data")
        link = allowed / "sneaky_link"
        link.symlink_to(outside)
        s = AnalyzerState()
        s.allowed_paths = [str(allowed)]
        with pytest.raises(RuntimeError, match="Access denied"):
            s.check_path_allowed(str(link))


# ---------------------------------------------------------------------------
# Report cache
# ---------------------------------------------------------------------------

def _report(value):
    return ExtractionReport(strings=[ExtractedString(value, 0, ".text")])


class TestReportCache:
    def test_miss_returns_none(self):
        assert AnalyzerState().get_report(("/bin/ls", "auto", 0, 4)) is None

    def test_set_and_get(self):
        s = AnalyzerState()
        key = ("/bin/ls", "auto", 0, 4)
        report = _report("hello")
        s.set_report(key, report)
        assert s.get_report(key) is report

    def test_min_length_is_part_of_key(self):
        s = AnalyzerState()
        s.set_report(("/bin/ls", "auto", 0, 4), _report("four"))
        assert s.get_report(("/bin/ls", "auto", 0, 8)) is None

    def test_oldest_evicted(self):
        s = AnalyzerState()
        for i in range(MAX_CACHED_REPORTS + 2):
            s.set_report((f"/f{i}", "auto", 0, 4), _report(f"r{i}"))
        assert s.get_report(("/f0", "auto", 0, 4)) is None
        assert s.get_report(("/f1", "auto", 0, 4)) is None
        assert s.get_report((f"/f{MAX_CACHED_REPORTS + 1}", "auto", 0, 4)) is not None

    def test_reinsert_refreshes_position(self):
        s = AnalyzerState()
        for i in range(MAX_CACHED_REPORTS):
            s.set_report((f"/f{i}", "auto", 0, 4), _report(f"r{i}"))
        s.set_report(("/f0", "auto", 0, 4), _report("again"))
        s.set_report(("/new", "auto", 0, 4), _report("new"))
        assert s.get_report(("/f0", "auto", 0, 4)) is not None
        assert s.get_report(("/f1", "auto", 0, 4)) is None

    def test_clear_reports(self):
        s = AnalyzerState()
        s.set_report(("/a", "auto", 0, 4), _report("a"))
        s.set_report(("/b", "auto", 0, 4), _report("b"))
        assert s.clear_reports() == 2
        assert s.get_report(("/a", "auto", 0, 4)) is None

    def test_concurrent_inserts(self):
        s = AnalyzerState()

        def worker(n):
            for i in range(50):
                s.set_report((f"/t{n}/{i}", "auto", 0, 4), _report("x"))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(s._reports) == MAX_CACHED_REPORTS
