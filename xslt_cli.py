#!/usr/bin/env python3
"""Apply an XSLT stylesheet to an XML document from the command line.

The command reads the stylesheet and the document as text (``-`` reads
stdin), compiles and parses them with the bridge, runs the transform and
writes the serialized result.

Usage:
  xslt-bridge style.xsl input.xml
  xslt-bridge style.xsl input.xml -p title "Annual report" -p year 2024
  cat input.xml | xslt-bridge style.xsl - --out result.html

Exit codes:
  0  success
  1  parse, compile or transform failure
  2  usage error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from xslt_bridge import BridgeConfig, BridgeError, XsltBridge, load_config
from xslt_bridge.config import configure_logging

logger = logging.getLogger(__name__)


def read_source(source: str) -> bytes:
    """Read raw bytes from a path, or stdin for ``-``."""
    if source == "-":
        return sys.stdin.buffer.read()
    return Path(source).read_bytes()


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="xslt-bridge",
        description="Apply an XSLT stylesheet to an XML document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Basic usage:
    xslt-bridge style.xsl input.xml

  Pass stylesheet parameters (available as $title, $year):
    xslt-bridge style.xsl input.xml -p title "Annual report" -p year 2024

  Read the document from stdin and write to a file:
    cat input.xml | xslt-bridge style.xsl - --out result.html
        """
    )
    ap.add_argument("stylesheet", help="Path to the XSLT stylesheet")
    ap.add_argument("document", help="Path to the XML document ('-' for stdin)")
    ap.add_argument(
        "-p", "--param",
        nargs=2,
        action="append",
        default=[],
        metavar=("NAME", "VALUE"),
        help="Stylesheet string parameter (repeatable)",
    )
    ap.add_argument("-o", "--out", default=None, help="Output file (default: stdout)")
    ap.add_argument("--config", default=None, help="Bridge configuration file (.json/.yaml)")
    ap.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from config, else WARNING)",
    )
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.stylesheet == "-" and args.document == "-":
        print("error: only one of STYLESHEET and DOCUMENT may be read from stdin", file=sys.stderr)
        return 2

    try:
        config = load_config(Path(args.config)) if args.config else BridgeConfig(log_level="WARNING")
    except (OSError, ValueError, TypeError, ImportError) as e:
        print(f"error: cannot load config: {e}", file=sys.stderr)
        return 2

    configure_logging(args.log_level or config.log_level)

    try:
        stylesheet_text = read_source(args.stylesheet)
        document_text = read_source(args.document)
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    params = [item for pair in args.param for item in pair]
    bridge = XsltBridge(config)

    try:
        with bridge.compile_stylesheet(stylesheet_text) as style, \
                bridge.parse_document(document_text) as doc:
            output = bridge.transform_output(style, doc, params)
    except BridgeError as e:
        logger.debug("Transform failed", exc_info=True)
        print(f"error: {e.message}", file=sys.stderr)
        for entry in e.log:
            print(f"  line {entry['line']}, column {entry['column']}: {entry['message']}", file=sys.stderr)
        return 1

    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(output.data)
        logger.info(f"Wrote {output.length} bytes to {out_path}")
    else:
        sys.stdout.buffer.write(output.data)
        sys.stdout.flush()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
