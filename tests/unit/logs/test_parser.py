# tests/unit/logs/test_parser.py
"""Tests for job log parsing."""

import pytest

from runtrace.contracts.errors import LogFormatError
from runtrace.contracts.models import LogRecord
from runtrace.logs.parser import parse_log_line, parse_log_text

SAMPLE_LOG = "2023-06-13T19:09:45.403719Z Waiting for a runner\n\n2023-06-13T19:09:46.000000Z Started\n"


class TestParseLogText:
    def test_sample_log(self) -> None:
        records = parse_log_text(SAMPLE_LOG, job_id=101)

        assert records == [
            LogRecord(timestamp_ns=1686683385403719000, message="Waiting for a runner"),
            LogRecord(timestamp_ns=1686683386000000000, message="Started"),
        ]

    def test_empty_body(self) -> None:
        assert parse_log_text("") == []
        assert parse_log_text("\n\n") == []

    def test_missing_trailing_newline(self) -> None:
        records = parse_log_text("2023-06-13T19:09:45Z last line")

        assert records == [LogRecord(timestamp_ns=1686683385000000000, message="last line")]

    def test_crlf_line_endings(self) -> None:
        records = parse_log_text("2023-06-13T19:09:45Z one\r\n\r\n2023-06-13T19:09:46Z two\r\n")

        assert [r.message for r in records] == ["one", "two"]

    def test_leading_byte_order_mark(self) -> None:
        records = parse_log_text("\ufeff2023-06-13T19:09:45.4037197Z ##[group]Run actions/checkout@v4\n")

        assert records[0].timestamp_ns == 1686683385403719700
        assert records[0].message == "##[group]Run actions/checkout@v4"

    def test_message_keeps_inner_whitespace(self) -> None:
        (record,) = parse_log_text("2023-06-13T19:09:45Z   indented  output  \n")

        assert record.message == "  indented  output  "

    def test_timestamp_only_line_has_empty_message(self) -> None:
        (record,) = parse_log_text("2023-06-13T19:09:45Z\n")

        assert record.message == ""

    def test_order_kept_when_timestamps_repeat_or_go_backwards(self) -> None:
        body = "2023-06-13T19:09:46Z b\n2023-06-13T19:09:46Z c\n2023-06-13T19:09:45Z a\n"

        records = parse_log_text(body)

        assert [r.message for r in records] == ["b", "c", "a"]

    def test_malformed_line_rejects_whole_log(self) -> None:
        body = "2023-06-13T19:09:45Z fine\n\nno timestamp here\n2023-06-13T19:09:46Z also fine\n"

        with pytest.raises(LogFormatError) as exc_info:
            parse_log_text(body, job_id=7)

        assert exc_info.value.job_id == 7
        assert exc_info.value.line_number == 3
        assert "line 3" in str(exc_info.value)

    @pytest.mark.parametrize("body", [{"message": "Not Found"}, b"2023-06-13T19:09:45Z bytes", None, 42])
    def test_non_text_body_rejected(self, body: object) -> None:
        with pytest.raises(LogFormatError, match="Expected log text") as exc_info:
            parse_log_text(body, job_id=9)

        assert exc_info.value.line_number is None
        assert exc_info.value.job_id == 9


class TestParseLogLine:
    def test_splits_on_first_space(self) -> None:
        record = parse_log_line("2023-06-13T19:09:45.1Z a b c")

        assert record == LogRecord(timestamp_ns=1686683385100000000, message="a b c")

    @pytest.mark.parametrize(
        "line",
        [
            "2023-06-13 19:09:45Z message",
            "2023-13-13T19:09:45Z message",
            "13/06/2023 message",
            "garbage",
        ],
    )
    def test_invalid_prefix(self, line: str) -> None:
        with pytest.raises(LogFormatError, match="Invalid timestamp prefix"):
            parse_log_line(line, line_number=1)
