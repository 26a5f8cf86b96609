"""Tests for the xraytrace command line."""

import json
from unittest.mock import patch

from click.testing import CliRunner

from xraytrace.__main__ import cli
from xraytrace.config import ExporterConfig

SAMPLE = (
    "Root=1-5759e988-bd862e3fe1be46a994272793;"
    "Parent=53995c3f42cd8ad8;Sampled=1"
)


class TestIds:
    def test_prints_requested_count(self):
        result = CliRunner().invoke(cli, ["ids", "-n", "3"])
        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert len(lines) == 3
        trace_id, span_id = lines[0].split()
        assert len(trace_id) == len("1-5759e988-bd862e3fe1be46a994272793")
        assert len(span_id) == 16


class TestEncodeDecode:
    """Tests for the header commands."""

    def test_encode(self):
        result = CliRunner().invoke(
            cli,
            [
                "encode",
                "--trace-id",
                "1-5759e988-bd862e3fe1be46a994272793",
                "--span-id",
                "53995c3f42cd8ad8",
            ],
        )
        assert result.exit_code == 0
        assert result.output.strip() == SAMPLE

    def test_encode_not_sampled(self):
        result = CliRunner().invoke(
            cli,
            [
                "encode",
                "--trace-id",
                "5759e988bd862e3fe1be46a994272793",
                "--span-id",
                "53995c3f42cd8ad8",
                "--not-sampled",
            ],
        )
        assert result.output.strip().endswith("Sampled=0")

    def test_encode_invalid_span_id(self):
        result = CliRunner().invoke(
            cli,
            ["encode", "--trace-id", "1-5759e988-bd86", "--span-id", "xyz"],
        )
        assert result.exit_code == 1

    def test_decode(self):
        result = CliRunner().invoke(cli, ["decode", SAMPLE])
        assert result.exit_code == 0
        assert "trace_id: 1-5759e988-bd862e3fe1be46a994272793" in result.output
        assert "parent_id: 53995c3f42cd8ad8" in result.output
        assert "sampled: true" in result.output

    def test_decode_malformed(self):
        result = CliRunner().invoke(cli, ["decode", "Parent=1"])
        assert result.exit_code == 1
        assert "no trace context" in result.output


class TestRender:
    """Tests for rendering segment files."""

    def test_render_yaml(self, tmp_path):
        path = tmp_path / "segment.yaml"
        path.write_text(
            "name: checkout\n"
            "id: 000000000000007b\n"
            "origin: EC2_INSTANCE\n"
            "start_time: 1\n"
            "end_time: 2\n"
        )
        result = CliRunner().invoke(cli, ["render", str(path)])
        assert result.exit_code == 0
        assert result.output.strip() == (
            '{"end_time":2,"id":"000000000000007b","is_progress":false,'
            '"name":"checkout","origin":"AWS::EC2::Instance",'
            '"parent_id":null,"start_time":1}'
        )

    def test_render_digit_only_ids_read_as_hex(self, tmp_path):
        """Ids made only of digits are still hexadecimal."""
        path = tmp_path / "segment.yaml"
        path.write_text(
            "id: 0000000000000315\n"
            "parent_id: 1234567890123456\n"
            "precursor_ids:\n"
            "  - 10\n"
            "start_time: 1\n"
            "end_time: 2\n"
            "subsegments:\n"
            "  - id: 0000000000000020\n"
            "    parent_id: null\n"
            "    start_time: 1\n"
            "    end_time: 2\n"
        )
        result = CliRunner().invoke(cli, ["render", str(path)])
        assert result.exit_code == 0
        document = json.loads(result.output)
        assert document["id"] == "0000000000000315"
        assert document["parent_id"] == "1234567890123456"
        assert document["precursor_ids"] == ["0000000000000010"]
        assert document["subsegments"][0]["id"] == "0000000000000020"
        assert document["subsegments"][0]["parent_id"] is None
        assert document["start_time"] == 1

    def test_render_malformed_yaml(self, tmp_path):
        path = tmp_path / "segment.yaml"
        path.write_text("name: [unclosed\n")
        result = CliRunner().invoke(cli, ["render", str(path)])
        assert result.exit_code == 1
        # handled through handle_error, not an uncaught parser error
        assert isinstance(result.exception, SystemExit)

    def test_render_invalid_field(self, tmp_path):
        path = tmp_path / "segment.yaml"
        path.write_text("colour: blue\n")
        result = CliRunner().invoke(cli, ["render", str(path)])
        assert result.exit_code == 1

    def test_render_out_of_range(self, tmp_path):
        path = tmp_path / "segment.json"
        path.write_text(json.dumps({"id": -1}))
        result = CliRunner().invoke(cli, ["render", str(path)])
        assert result.exit_code == 1


class TestDoctor:
    @patch("xraytrace.__main__.load_config")
    def test_reports_settings(self, mock_load):
        mock_load.return_value = ExporterConfig(
            service_name="checkout", origin="ECS_CONTAINER"
        )
        result = CliRunner().invoke(cli, ["doctor"])
        assert result.exit_code == 0
        assert "service_name: checkout" in result.output
        assert "origin: AWS::ECS::Container" in result.output

    def test_missing_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XRAYTRACE_CONFIG", str(tmp_path / "none.yaml"))
        result = CliRunner().invoke(cli, ["doctor"])
        assert result.exit_code == 1
