"""Tests for the file-level engine."""

import json

import pytest

from shared.config import LoaderConfig, TetherConfig
from shared.logger import TetherLogger

from tether.core.engine import TetherEngine
from tether.core.errors import BadDosSignatureError, ImageTooLargeError
from tether.core.models import ByName, ByOrdinal


class TestTetherEngine:
    """Tests for :class:`TetherEngine`."""

    def test_analyze_file(self, pe_file):
        report = TetherEngine().analyze_file(pe_file)
        assert report.path == str(pe_file.resolve())
        assert report.imports == {
            "KERNEL32.dll": {ByName(name="ExitProcess"), ByOrdinal(ordinal=5)}
        }

    def test_analyze_data(self, kernel32_pe32):
        report = TetherEngine().analyze_data(bytes(kernel32_pe32.data))
        assert report.path == ""
        assert report.library_count == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TetherEngine().analyze_file(tmp_path / "absent.exe")

    def test_directory_is_not_a_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TetherEngine().analyze_file(tmp_path)

    def test_file_size_budget(self, pe_file):
        config = TetherConfig(loader=LoaderConfig(max_file_size=128))
        with pytest.raises(ImageTooLargeError, match="too large"):
            TetherEngine(config=config).analyze_file(pe_file)

    def test_limits_from_config(self):
        config = TetherConfig(
            loader=LoaderConfig(max_descriptors=7, max_thunks=9, max_name_length=11)
        )
        limits = TetherEngine(config=config).limits
        assert (limits.max_descriptors, limits.max_thunks, limits.max_name_length) == (7, 9, 11)

    def test_configured_caps_applied(self, multi_library_pe):
        config = TetherConfig(loader=LoaderConfig(max_descriptors=1))
        report = TetherEngine(config=config).analyze_data(multi_library_pe.data)
        assert list(report.imports) == ["KERNEL32.dll"]

    def test_malformed_file_propagates(self, tmp_path):
        path = tmp_path / "bad.exe"
        path.write_bytes(b"XX" + bytes(126))
        with pytest.raises(BadDosSignatureError):
            TetherEngine().analyze_file(path)

    def test_load_failure_logged(self, tmp_path, restore_logger):
        restore_logger("tether.engine")
        log_file = tmp_path / "tether.log"
        logger = TetherLogger(
            "engine", log_file=log_file, json_logs=True, console_output=False
        )
        path = tmp_path / "bad.exe"
        path.write_bytes(b"XX" + bytes(126))

        with pytest.raises(BadDosSignatureError):
            TetherEngine(logger=logger).analyze_file(path)
        for handler in logger.underlying.handlers:
            handler.flush()

        entries = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        (failure,) = [e for e in entries if e["level"] == "ERROR"]
        assert failure["message"].startswith("Cannot load bad.exe")
        assert failure["operation"] == "load"
        assert failure["extra"] == {"kind": "BadDosSignature", "offset": 0}
