"""Tests for the ``tether`` command line."""

import json

from click.testing import CliRunner

from tether.cli import tether_cli


class TestCli:
    """Tests for :func:`tether_cli`."""

    def test_table_output(self, pe_file):
        result = CliRunner().invoke(tether_cli, [str(pe_file)])
        assert result.exit_code == 0, result.output
        assert "KERNEL32.dll" in result.output
        assert "ExitProcess" in result.output

    def test_json_output(self, pe_file):
        result = CliRunner().invoke(tether_cli, [str(pe_file), "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["result"]["imports"]["KERNEL32.dll"] == [
            {"kind": "name", "name": "ExitProcess"},
            {"kind": "ordinal", "ordinal": 5},
        ]

    def test_output_file(self, pe_file, tmp_path):
        out = tmp_path / "out" / "report.json"
        result = CliRunner().invoke(tether_cli, [str(pe_file), "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert json.loads(out.read_text(encoding="utf-8"))["result"]["library_count"] == 1

    def test_malformed_image_exits_1(self, tmp_path):
        path = tmp_path / "bad.exe"
        path.write_bytes(b"MZ")
        result = CliRunner().invoke(tether_cli, [str(path)])
        assert result.exit_code == 1
        assert "Load failed" in result.output

    def test_missing_path_is_usage_error(self, tmp_path):
        result = CliRunner().invoke(tether_cli, [str(tmp_path / "nope.exe")])
        assert result.exit_code == 2

    def test_config_limits_applied(self, pe_file, tmp_path):
        config = tmp_path / "tether.toml"
        config.write_text("[loader]\nmax_file_size = 64\n", encoding="utf-8")
        result = CliRunner().invoke(tether_cli, [str(pe_file), "--config", str(config)])
        assert result.exit_code == 1
        assert "too large" in result.output

    def test_invalid_config_exits_1(self, pe_file, tmp_path):
        config = tmp_path / "broken.toml"
        config.write_text("[loader\n", encoding="utf-8")
        result = CliRunner().invoke(tether_cli, [str(pe_file), "-c", str(config)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_negative_cap_exits_1(self, pe_file, tmp_path):
        config = tmp_path / "tether.toml"
        config.write_text("[loader]\nmax_thunks = -1\n", encoding="utf-8")
        result = CliRunner().invoke(tether_cli, [str(pe_file), "--json", "-c", str(config)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
        assert "[loader] max_thunks" in result.output

    def test_non_integer_cap_exits_1(self, pe_file, tmp_path):
        config = tmp_path / "tether.toml"
        config.write_text('[loader]\nmax_thunks = "many"\n', encoding="utf-8")
        result = CliRunner().invoke(tether_cli, [str(pe_file), "-c", str(config)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
        assert not isinstance(result.exception, TypeError)
