"""Тесты ClientLogger, форматтеров и фильтров."""

import json
import logging

import pytest

from authflow.core.logging import (
    ClientLogger,
    CorrelationIdFilter,
    ExtraFieldsFilter,
    JSONFormatter,
    LogFormat,
    LoggingConfig,
    LogLevel,
    TextFormatter,
    clear_correlation_id,
    get_correlation_id,
    get_formatter,
    set_correlation_id,
)


def make_record(msg="hello", **extra):
    record = logging.LogRecord("authflow.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def read_lines(path):
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


class TestLoggingConfig:
    def test_create(self):
        config = LoggingConfig.create(level="debug", format="JSON")
        assert config.level is LogLevel.DEBUG
        assert config.format is LogFormat.JSON

    def test_file_requires_path(self):
        with pytest.raises(ValueError):
            LoggingConfig(enable_file=True)


class TestFormatters:
    def test_json_formatter(self):
        line = JSONFormatter().format(make_record(method="GET", status_code=200))
        data = json.loads(line)

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["logger"] == "authflow.test"
        assert data["method"] == "GET"
        assert data["status_code"] == 200
        assert "timestamp" in data

    def test_text_formatter(self):
        line = TextFormatter().format(make_record(path="/users"))
        assert "[INFO] [authflow.test] hello" in line
        assert "path=/users" in line

    def test_get_formatter(self):
        assert isinstance(get_formatter("json"), JSONFormatter)
        assert isinstance(get_formatter("TEXT"), TextFormatter)
        with pytest.raises(ValueError):
            get_formatter("colored")


class TestFilters:
    def test_correlation_id_lifecycle(self):
        set_correlation_id("req-1")
        assert get_correlation_id() == "req-1"

        record = make_record()
        CorrelationIdFilter().filter(record)
        assert record.correlation_id == "req-1"

        clear_correlation_id()
        assert get_correlation_id() is None

    def test_no_correlation_id(self):
        clear_correlation_id()
        record = make_record()
        CorrelationIdFilter().filter(record)
        assert not hasattr(record, "correlation_id")

    def test_extra_fields_do_not_override(self):
        record = make_record(service="explicit")
        ExtraFieldsFilter({"service": "api", "env": "test"}).filter(record)
        assert record.service == "explicit"
        assert record.env == "test"


class TestClientLogger:
    def test_writes_json_file(self, logging_config_with_file):
        logger = ClientLogger(logging_config_with_file, name="authflow.test.file")
        logger.info("Request completed", method="GET", path="/users", status_code=200)
        logger.close()

        entries = read_lines(logging_config_with_file.file_path)
        assert entries[0]["message"] == "Request completed"
        assert entries[0]["status_code"] == 200

    def test_masks_sensitive_fields(self, logging_config_with_file):
        logger = ClientLogger(logging_config_with_file, name="authflow.test.mask")
        logger.warning(
            "Dispatching",
            headers={"Authorization": "Bearer secret-token", "Accept": "*/*"},
            refresh_token="r-secret",
            note="password=hunter2",
        )
        logger.close()

        with open(logging_config_with_file.file_path, encoding="utf-8") as f:
            content = f.read()
        assert "secret-token" not in content
        assert "r-secret" not in content
        assert "hunter2" not in content
        assert "***REDACTED***" in content

    def test_correlation_id_in_records(self, logging_config_with_file):
        logger = ClientLogger(logging_config_with_file, name="authflow.test.corr")
        set_correlation_id("abc-123")
        try:
            logger.info("Request started")
        finally:
            clear_correlation_id()
        logger.close()

        assert read_lines(logging_config_with_file.file_path)[0]["correlation_id"] == "abc-123"

    def test_level_filtering(self, tmp_path):
        config = LoggingConfig.create(
            level="WARNING", format="json", enable_console=False,
            enable_file=True, file_path=str(tmp_path / "warn.log"),
        )
        logger = ClientLogger(config, name="authflow.test.level")
        logger.info("skipped")
        logger.error("kept")
        logger.close()

        messages = [entry["message"] for entry in read_lines(config.file_path)]
        assert messages == ["kept"]

    def test_exception_includes_traceback(self, logging_config_with_file):
        logger = ClientLogger(logging_config_with_file, name="authflow.test.exc")
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logger.exception("Request interceptor failed", path="/x")
        logger.close()

        entry = read_lines(logging_config_with_file.file_path)[0]
        assert "RuntimeError: boom" in entry["exception"]

    def test_close_idempotent(self, logging_config_with_file):
        with ClientLogger(logging_config_with_file, name="authflow.test.close") as logger:
            logger.info("x")
        logger.close()
