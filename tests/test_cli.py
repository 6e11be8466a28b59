"""
Command line tests.

Run with: pytest tests/test_cli.py -v
"""

import io
import json
import sys

import pytest

from xslt_cli import build_parser, main

from conftest import PARAM_XSLT, SAMPLE_XML, TERMINATE_XSLT, TWO_PARAM_XSLT


@pytest.fixture
def files(tmp_path):
    """Stylesheet and document on disk."""
    style = tmp_path / "style.xsl"
    style.write_text(PARAM_XSLT, encoding="utf-8")
    doc = tmp_path / "input.xml"
    doc.write_text(SAMPLE_XML, encoding="utf-8")
    return style, doc


class TestArguments:
    """Argument parsing."""

    def test_params_are_pairs(self):
        """Each -p takes a name and a value."""
        args = build_parser().parse_args(["s.xsl", "d.xml", "-p", "a", "1", "--param", "b", "2"])
        assert args.param == [["a", "1"], ["b", "2"]]

    def test_missing_document_is_usage_error(self):
        """argparse exits with 2 on missing positionals."""
        with pytest.raises(SystemExit) as exc_info:
            main(["style.xsl"])
        assert exc_info.value.code == 2


class TestMain:
    """End-to-end runs of main()."""

    def test_writes_to_stdout(self, files, capsysbinary):
        """Output bytes go to stdout."""
        style, doc = files
        assert main([str(style), str(doc), "-p", "name", "hello"]) == 0
        assert capsysbinary.readouterr().out == b"hello"

    def test_writes_to_file(self, files, tmp_path):
        """--out writes the result, creating parent directories."""
        style, doc = files
        out = tmp_path / "out" / "result.txt"
        assert main([str(style), str(doc), "-p", "name", "42", "--out", str(out)]) == 0
        assert out.read_bytes() == b"42"

    def test_multiple_params(self, tmp_path):
        """Parameters are passed in order."""
        style = tmp_path / "two.xsl"
        style.write_text(TWO_PARAM_XSLT)
        doc = tmp_path / "doc.xml"
        doc.write_text("<a/>")
        out = tmp_path / "result.txt"
        assert main([str(style), str(doc), "-p", "first", "x", "-p", "second", "y", "-o", str(out)]) == 0
        assert out.read_text() == "x|y"

    def test_document_from_stdin(self, files, monkeypatch, capsysbinary):
        """'-' reads the document from stdin."""
        style, _ = files
        monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(SAMPLE_XML.encode("utf-8"))))
        assert main([str(style), "-", "-p", "name", "piped"]) == 0
        assert capsysbinary.readouterr().out == b"piped"

    def test_both_from_stdin_rejected(self, capsys):
        """Only one input may come from stdin."""
        assert main(["-", "-"]) == 2
        assert "stdin" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        """Unreadable input is a usage error."""
        assert main([str(tmp_path / "nope.xsl"), str(tmp_path / "nope.xml")]) == 2
        assert "error:" in capsys.readouterr().err

    def test_parse_failure(self, files, tmp_path, capsys):
        """A malformed document exits with 1 and reports the error log."""
        style, _ = files
        doc = tmp_path / "broken.xml"
        doc.write_text("<root>\n<child>\n</root>")
        assert main([str(style), str(doc)]) == 1
        err = capsys.readouterr().err
        assert "error:" in err
        assert "line" in err

    def test_apply_failure(self, files, tmp_path, capsys):
        """A terminating stylesheet exits with 1."""
        _, doc = files
        style = tmp_path / "stop.xsl"
        style.write_text(TERMINATE_XSLT)
        assert main([str(style), str(doc)]) == 1
        assert "error:" in capsys.readouterr().err

    def test_invalid_parameter_name(self, files, capsys):
        """Bad parameter names are reported as errors."""
        style, doc = files
        assert main([str(style), str(doc), "-p", "1bad", "x"]) == 1
        assert "Invalid parameter name" in capsys.readouterr().err

    def test_config_file(self, files, tmp_path, capsys):
        """--config limits are applied."""
        style, doc = files
        config = tmp_path / "bridge.json"
        config.write_text(json.dumps({"transform": {"max_parameters": 0}}))
        assert main([str(style), str(doc), "--config", str(config), "-p", "name", "x"]) == 1
        assert "Too many parameters" in capsys.readouterr().err

    def test_bad_config_file(self, files, tmp_path, capsys):
        """An unsupported config file is a usage error."""
        style, doc = files
        config = tmp_path / "bridge.ini"
        config.write_text("[bridge]")
        assert main([str(style), str(doc), "--config", str(config)]) == 2
        assert "cannot load config" in capsys.readouterr().err
