from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

__all__ = (
    "AlchemyCleanerError",
    "CleanFailure",
    "ConfigurationError",
    "MissingDependencyError",
    "UnsupportedDialectError",
    "is_connection_lost",
    "wrap_clean_failure",
)


class AlchemyCleanerError(Exception):
    """Base exception class from which all Alchemy Cleaner exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``AlchemyCleanerError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(AlchemyCleanerError, ImportError):
    """Missing optional dependency.

    This exception is raised when a module depends on a dependency that has not been installed.

    Args:
        package: Name of the missing package.
        install_package: Optional alternative package name to install.
    """

    def __init__(self, package: str, install_package: str | None = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install alchemy_cleaner[{install_package or package}]' to install alchemy_cleaner with the required extra "
            f"or 'pip install {install_package or package}' to install the package separately",
        )


class ConfigurationError(AlchemyCleanerError, ValueError):
    """Improper configuration error.

    Raised when a strategy receives invalid options or when no database connection can be resolved.
    It is raised at construction time and never caught internally.

    Args:
        *args: Variable length argument list passed to parent class.
        detail: Detailed error message.
    """


class UnsupportedDialectError(AlchemyCleanerError):
    """The strategy cannot run against this SQLAlchemy version or database configuration.

    Args:
        *args: Variable length argument list passed to parent class.
        detail: Detailed error message.
    """


class CleanFailure(AlchemyCleanerError):
    """A statement issued while cleaning the database failed.

    The original driver error is available as ``__cause__``.

    Args:
        *args: Variable length argument list passed to parent class.
        detail: Detailed error message.
        table: Name of the table being cleaned when the failure occurred.
    """

    def __init__(self, *args: Any, detail: str = "", table: str | None = None) -> None:
        self.table = table
        super().__init__(*args, detail=detail)


def is_connection_lost(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` invalidated the underlying DBAPI connection.

    Such failures are transient, as opposed to a feature being unsupported by the database.
    """
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


@contextmanager
def wrap_clean_failure(table: str | None = None, action: str = "clean") -> Generator[None, None, None]:
    """Raise a ``CleanFailure`` chained from any ``SQLAlchemyError`` raised within the context.

        >>> try:
        ...     with wrap_clean_failure("users"):
        ...         raise SQLAlchemyError("Original Exception")
        ... except CleanFailure as exc:
        ...     print(f"{exc.table}: {type(exc.__cause__).__name__}")
        users: SQLAlchemyError
    """
    try:
        yield
    except SQLAlchemyError as exc:
        target = f" table {table!r}" if table else ""
        raise CleanFailure(detail=f"Failed to {action}{target}: {exc}", table=table) from exc
