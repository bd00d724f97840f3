import logging

import pytest

from esmetrics.error_handling import (
    ErrorCategory,
    ErrorSeverity,
    ReporterErrorHandler,
    get_error_handler,
    handle_connectivity_error,
    initialize_error_handler,
    safe_execute,
)
from esmetrics.utils.exceptions import ConnectivityError, EsMetricsError, PartialWriteError, StorageError


def test_exception_hierarchy() -> None:
    assert issubclass(PartialWriteError, StorageError)
    assert issubclass(ConnectivityError, EsMetricsError)
    err = PartialWriteError("2 rejected", ["a", "b"])
    assert err.failures == ["a", "b"]


def test_handle_error_records_and_counts(caplog) -> None:
    handler = ReporterErrorHandler()
    with caplog.at_level(logging.WARNING, logger="esmetrics.errors"):
        info = handler.handle_error(
            ValueError("bad"),
            category=ErrorCategory.BULK_WRITE,
            severity=ErrorSeverity.MEDIUM,
            component="reporting.bulk_writer",
            function_name="write",
            context={"index": "esmetrics-2024-03"},
        )
    assert info.message == "bad"
    assert "[BULK_WRITE] reporting.bulk_writer.write: bad" in caplog.text
    summary = handler.get_error_summary()
    assert summary["total_errors"] == 1
    assert summary["by_type"] == {"ValueError": 1}
    assert summary["by_category"] == {"bulk_write": 1}
    handler.clear_errors()
    assert handler.get_recent_errors() == []


def test_history_is_bounded() -> None:
    handler = ReporterErrorHandler(max_errors=3)
    for i in range(5):
        handler.handle_error(RuntimeError(str(i)), should_log=False)
    assert [e.message for e in handler.get_recent_errors()] == ["2", "3", "4"]


def test_should_reraise() -> None:
    with pytest.raises(KeyError):
        ReporterErrorHandler().handle_error(KeyError("k"), should_log=False, should_reraise=True)


def test_global_handler_and_file_log(tmp_path) -> None:
    log_file = tmp_path / "logs" / "errors.log"
    handler = initialize_error_handler(log_file=str(log_file))
    assert get_error_handler() is handler
    handle_connectivity_error(ConnectivityError("refused"), "reporting.reporter", "report")
    for h in handler.logger.handlers:
        h.flush()
    assert "Backend unavailable: refused" in log_file.read_text(encoding="utf-8")
    for h in list(handler.logger.handlers):
        handler.logger.removeHandler(h)
        h.close()


def test_safe_execute_returns_default(error_handler) -> None:
    def explode():
        raise RuntimeError("nope")

    assert safe_execute(explode, category=ErrorCategory.SCHEDULER, default_return=-1) == -1
    assert safe_execute(lambda x: x * 2, 4) == 8
    (err,) = error_handler.get_recent_errors(category=ErrorCategory.SCHEDULER)
    assert err.function_name == "explode"


def test_version_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    from esmetrics.version import __version__, get_version

    monkeypatch.delenv("ESM_VERSION", raising=False)
    assert get_version() == __version__
    monkeypatch.setenv("ESM_VERSION", "9.9.9-ci")
    assert get_version() == "9.9.9-ci"
