"""
Tests for the command line entry point.
"""

import json
import logging
from unittest import mock

import pytest

from ddd_auto_generator import cli
from ddd_auto_generator.colored_logging import ColoredFormatter, setup_colored_logging
from ddd_auto_generator.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def _run(*argv):
    return cli.main(list(argv) + ["--no-color"])


def test_parser_defaults():
    args = cli.build_parser().parse_args(["shop_catalog"])
    assert args.schema == "shop_catalog"
    assert args.force is None
    assert args.dry_run is None
    assert args.unimplemented_rules is None


def test_generates_a_schema(schemas_dir, tmp_path):
    output_dir = tmp_path / "generated"
    report_path = tmp_path / "report.json"
    code = _run("shop_catalog", "-s", str(schemas_dir), "-o", str(output_dir), "--report", str(report_path))
    assert code == 0
    assert (output_dir / "shop_catalog" / "product" / "domain" / "aggregates" / "product_aggregate.py").is_file()

    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["errors"] == {}
    assert report["skipped_tables"] == {"audit_log": "structured primary key"}


def test_dry_run_writes_nothing(schemas_dir, tmp_path):
    output_dir = tmp_path / "generated"
    assert _run("shop_catalog", "-s", str(schemas_dir), "-o", str(output_dir), "--dry-run") == 0
    assert not output_dir.exists()


def test_block_mode_still_completes(schemas_dir, tmp_path):
    report_path = tmp_path / "report.json"
    code = _run(
        "shop_catalog", "-s", str(schemas_dir), "-o", str(tmp_path / "generated"),
        "--unimplemented-rules", "block", "--report", str(report_path),
    )
    assert code == 0
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert "product.aggregate" in report["errors"]


def test_unknown_schema_fails(tmp_path):
    assert _run("nowhere", "-s", str(tmp_path), "-o", str(tmp_path / "generated")) == 1


@mock.patch("ddd_auto_generator.cli.generate_code_from_schema")
def test_generator_errors_fail(mock_generate, tmp_path):
    mock_generate.side_effect = ConfigurationError("bad store backend")
    assert _run("shop_catalog", "-o", str(tmp_path)) == 1


@mock.patch("ddd_auto_generator.cli.generate_code_from_schema")
def test_unexpected_errors_fail(mock_generate, tmp_path):
    mock_generate.side_effect = RuntimeError("boom")
    assert _run("shop_catalog", "-o", str(tmp_path), "-v") == 1


def test_setup_colored_logging_replaces_handlers():
    root = logging.getLogger()
    root.addHandler(logging.NullHandler())
    setup_colored_logging(level=logging.DEBUG, use_colors=False)
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, ColoredFormatter)
    assert root.level == logging.DEBUG
