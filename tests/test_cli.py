"""Tests for CLI commands."""

import json
import logging

from click.testing import CliRunner

from compliance_engine.cli import SecretRedactingFilter, cli


def test_parse_answer_structured():
    """Test parse-answer prints the verdict for JSON output."""
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["parse-answer", '{"isApplicable": "NO", "justification": "We have no offices at all."}'],
    )

    assert result.exit_code == 0
    assert "StructuredOk" in result.output
    payload = json.loads(result.output.split("\n", 1)[1])
    assert payload["isApplicable"] is False
    assert payload["justification"] == "We have no offices at all."


def test_parse_answer_reads_stdin():
    """Test parse-answer reads model output from stdin."""
    runner = CliRunner()
    result = runner.invoke(cli, ["parse-answer"], input="INSUFFICIENT_DATA")

    assert result.exit_code == 0
    assert "InsufficientData" in result.output
    assert '"isApplicable": true' in result.output


def test_secret_redacting_filter():
    """Test that secrets are masked in log records."""
    record = logging.LogRecord(
        "test", logging.INFO, __file__, 1,
        "Calling API with Authorization: Bearer abcdef123456 api_key=sk-ant-REDACTED",
        None, None,
    )

    SecretRedactingFilter().filter(record)

    assert "abcdef123456" not in record.msg
    assert "abcdefghijklmnopqrstuvwxyz" not in record.msg
    assert "[REDACTED]" in record.msg
