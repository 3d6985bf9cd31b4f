"""
Error Handling and Messaging for vmlaunch

This module provides the error classification used by the launcher and a
small handler that logs an error and renders it with actionable suggestions.
"""

import logging
import traceback
from enum import Enum
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from .core_utils import print_info, print_warning

console = Console(stderr=True)
logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Error severity levels for classification"""
    INFO = "info"           # Informational message, not an error
    WARNING = "warning"     # Warning that doesn't prevent operation
    ERROR = "error"         # Error that stops the requested action


class ErrorCategory(Enum):
    """Error categories for systematic classification"""
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    STORAGE = "storage"
    PROCESS = "process"
    DEPENDENCY = "dependency"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


@dataclass
class ErrorInfo:
    """Everything the handler needs to report an error"""
    message: str
    code: str
    severity: ErrorSeverity
    category: ErrorCategory
    details: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)
    exception: Optional[BaseException] = None
    context: Dict[str, Any] = field(default_factory=dict)


class LauncherError(Exception):
    """Base exception class for all vmlaunch errors"""
    def __init__(self,
                 message: str,
                 code: str = "VML-E000",
                 severity: ErrorSeverity = ErrorSeverity.ERROR,
                 category: ErrorCategory = ErrorCategory.UNKNOWN,
                 details: Optional[str] = None,
                 suggestions: List[str] = None,
                 context: Dict[str, Any] = None,
                 original_exception: BaseException = None):
        self.error_info = ErrorInfo(
            message=message,
            code=code,
            severity=severity,
            category=category,
            details=details,
            suggestions=suggestions or [],
            exception=original_exception,
            context=context or {}
        )
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.error_info.code

    @property
    def severity(self) -> ErrorSeverity:
        return self.error_info.severity

    @property
    def category(self) -> ErrorCategory:
        return self.error_info.category

    @property
    def suggestions(self) -> List[str]:
        return self.error_info.suggestions

    @property
    def details(self) -> Optional[str]:
        return self.error_info.details

    @property
    def context(self) -> Dict[str, Any]:
        return self.error_info.context


class ConfigurationError(LauncherError):
    """Invalid or unreadable configuration"""
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('category', ErrorCategory.CONFIGURATION)
        kwargs.setdefault('code', 'VML-E200')
        super().__init__(message, **kwargs)


class StorageError(LauncherError):
    """Disk image problems detected before any tool runs"""
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('category', ErrorCategory.STORAGE)
        kwargs.setdefault('code', 'VML-E600')
        super().__init__(message, **kwargs)


class ProcessError(LauncherError):
    """An external tool exited with a non-zero status"""
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('category', ErrorCategory.PROCESS)
        kwargs.setdefault('code', 'VML-E700')
        super().__init__(message, **kwargs)


class ValidationError(LauncherError):
    """Invalid command-line input"""
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('category', ErrorCategory.VALIDATION)
        kwargs.setdefault('code', 'VML-E800')
        super().__init__(message, **kwargs)


class DependencyError(LauncherError):
    """An external tool could not be found or started"""
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('category', ErrorCategory.DEPENDENCY)
        kwargs.setdefault('code', 'VML-E900')
        super().__init__(message, **kwargs)


class ErrorHandler:
    """
    Logs errors and displays them to the user.

    Nothing here retries or recovers: the launcher stops at the first
    failure, so handling an error only means reporting it well.
    """

    def __init__(self):
        self.logger = logging.getLogger('vmlaunch.error_handler')

    def handle_error(self, error: BaseException, context: Dict[str, Any] = None) -> LauncherError:
        """
        Report an exception and return it as a LauncherError

        Args:
            error: The exception to handle
            context: Additional context information

        Returns:
            LauncherError: the (possibly converted) error that was reported
        """
        if not isinstance(error, LauncherError):
            error = self._convert_exception(error)

        if context:
            error.error_info.context.update(context)

        self._log_error(error)
        self.display_error(error)
        return error

    def _convert_exception(self, exception: BaseException) -> LauncherError:
        """Convert a standard exception to a LauncherError"""
        category = ErrorCategory.UNKNOWN
        code = "VML-E000"
        severity = ErrorSeverity.ERROR

        if isinstance(exception, FileNotFoundError):
            category = ErrorCategory.DEPENDENCY
            code = "VML-E901"
            message = f"File or program not found: {exception.filename or exception}"
            suggestions = [
                "Verify the configured paths are correct",
                "Ensure QEMU is installed and on your PATH",
            ]
        elif isinstance(exception, PermissionError):
            category = ErrorCategory.STORAGE
            code = "VML-E601"
            message = f"Permission denied: {exception.filename or exception}"
            suggestions = [
                "Check file and directory permissions",
                "Check that your user may access /dev/kvm",
            ]
        elif isinstance(exception, KeyboardInterrupt):
            category = ErrorCategory.PROCESS
            code = "VML-E701"
            message = "Operation cancelled by user"
            suggestions = []
            severity = ErrorSeverity.WARNING
        else:
            category = ErrorCategory.INTERNAL
            code = "VML-E1100"
            message = str(exception) or "An unknown error occurred"
            suggestions = [
                "Re-run with --verbose and check the log file for details",
            ]

        return LauncherError(
            message=message,
            code=code,
            severity=severity,
            category=category,
            details=traceback.format_exception_only(type(exception), exception)[-1].strip(),
            suggestions=suggestions,
            original_exception=exception,
        )

    def _log_error(self, error: LauncherError):
        log_message = f"[{error.code}] {error.severity.value.upper()}: {error}"
        original = error.error_info.exception

        if error.severity == ErrorSeverity.ERROR:
            self.logger.error(log_message, exc_info=original)
        elif error.severity == ErrorSeverity.WARNING:
            self.logger.warning(log_message)
        else:
            self.logger.info(log_message)

    def display_error(self, error: LauncherError):
        """Display error information to the user"""
        if error.severity == ErrorSeverity.INFO:
            print_info(f"{error}")
            for suggestion in error.suggestions:
                print_info(f"  • {suggestion}")
        elif error.severity == ErrorSeverity.WARNING:
            print_warning(f"{error}")
            for suggestion in error.suggestions:
                console.print(f"  • {suggestion}")
        else:
            self._display_panel(error)

    def _display_panel(self, error: LauncherError):
        body = f"[bold red]Error {error.code}:[/] {escape(str(error))}\n"

        if error.details:
            body += f"\n[dim]{escape(error.details)}[/]"

        if error.suggestions:
            body += "\n\n[yellow]Suggested Solutions:[/]"
            for suggestion in error.suggestions:
                body += f"\n  • {escape(suggestion)}"

        console.print(Panel(
            body,
            title=f"[red]{error.category.value.upper()} ERROR[/]",
            border_style="red"
        ))


_error_handler = None

def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance"""
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler
