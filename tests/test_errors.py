import logging

from vmlaunch.errors import (
    ConfigurationError, ErrorCategory, ErrorHandler, ErrorSeverity, LauncherError,
)


def test_subclass_defaults():
    error = ConfigurationError("bad value")

    assert error.code == "VML-E200"
    assert error.category == ErrorCategory.CONFIGURATION
    assert error.severity == ErrorSeverity.ERROR
    assert error.suggestions == []


def test_handle_error_renders_panel_and_logs(capsys, caplog):
    error = ConfigurationError(
        "Invalid configuration",
        details="MEMORY_MB must be positive, got 0",
        suggestions=["Edit vmlaunch.json"],
    )

    with caplog.at_level(logging.ERROR, logger="vmlaunch.error_handler"):
        handled = ErrorHandler().handle_error(error, {"step": "validate"})

    assert handled is error
    assert handled.context["step"] == "validate"
    err = capsys.readouterr().err
    assert "VML-E200" in err
    assert "Edit vmlaunch.json" in err
    assert "[VML-E200]" in caplog.text


def test_handle_error_converts_file_not_found(capsys):
    handled = ErrorHandler().handle_error(FileNotFoundError(2, "No such file", "qemu-img"))

    assert isinstance(handled, LauncherError)
    assert handled.category == ErrorCategory.DEPENDENCY
    assert "qemu-img" in str(handled)


def test_keyboard_interrupt_is_a_warning(capsys):
    handled = ErrorHandler().handle_error(KeyboardInterrupt())

    assert handled.severity == ErrorSeverity.WARNING
    assert "cancelled" in capsys.readouterr().out


def test_unexpected_exception_becomes_internal_error(capsys):
    handled = ErrorHandler().handle_error(RuntimeError("boom"))

    assert handled.category == ErrorCategory.INTERNAL
    assert str(handled) == "boom"
    assert "RuntimeError: boom" in handled.details
