"""Exception types raised by the table materialization engine.

Every domain error carries a context dictionary (object path, schema name,
line number, ...) that is rendered into the message so a single log line is
enough to diagnose the failure.
"""

from typing import Any, Dict, Optional


class ContextMixin:
    """Adds ordered key/value diagnostic context to an exception."""

    def _init_context(self, message: str) -> None:
        self.raw_message = message
        self.context: Dict[str, Any] = {}

    def set_context(self, label: str, value: Any) -> "ContextMixin":
        """Set a context value, replacing any previous value for the label."""
        self.context[label] = value
        return self

    def add_context(self, label: str, value: Any) -> "ContextMixin":
        """Set a context value only if the label is not already present."""
        self.context.setdefault(label, value)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.raw_message
        lines = [self.raw_message, "Exception Context:"]
        for index, (label, value) in enumerate(self.context.items(), start=1):
            lines.append(f"\t[{index}:{label}={value}]")
        return "\n".join(lines)


class ObjectTablesError(ContextMixin, RuntimeError):
    """Base class for all engine errors."""

    def __init__(self, message: str = "", **context: Any):
        super().__init__(message)
        self._init_context(message)
        self.context.update(context)


class ObjectTablesRuntimeError(ObjectTablesError):
    """General runtime failure while reading tables or objects."""


class FileFormatError(ObjectTablesRuntimeError):
    """A data file does not have the structure its table requires."""


class IllegalArgumentError(ObjectTablesError, ValueError):
    """An internal contract or configuration value is invalid."""


class UnexpectedHandleTypeError(IllegalArgumentError):
    """A handle of the wrong variant was passed to the connector."""

    def __init__(self, expected: Optional[type], actual: Optional[type]):
        super().__init__("Unexpected class encountered")
        if expected is not None:
            self.set_context("expected_class", expected.__name__)
        if actual is not None:
            self.set_context("actual_class", actual.__name__)


class SchemaNotFoundError(ObjectTablesError):
    """No directory mapping or manifest exists for a schema."""

    def __init__(self, schema_name: str, message: Optional[str] = None, **context: Any):
        super().__init__(message or f"Schema not found: {schema_name}", **context)
        self.schema_name = schema_name

    @classmethod
    def with_no_directory_message(cls, schema_name: str) -> "SchemaNotFoundError":
        """Build the error raised when a schema has no configured directory."""
        msg = (
            "No directory that maps to the configured value was found for the "
            "specified schema. Make sure that you have specified the schema in "
            "your configuration under 'schemas' in the "
            "'<schema name>: <directory>' format."
        )
        error = cls(schema_name, msg)
        error.set_context("schema_name_in_brackets", f"[{schema_name}]")
        return error


class TableNotFoundError(ObjectTablesError):
    """A table is not declared or has no objects satisfying its filters."""

    def __init__(self, schema_name: str, table_name: str, message: Optional[str] = None):
        super().__init__(message or f"Table not found: {schema_name}.{table_name}")
        self.schema_name = schema_name
        self.table_name = table_name
        self.set_context("schema_name", schema_name)
        self.set_context("table_name", table_name)


class UncheckedIOError(ObjectTablesError, OSError):
    """Wraps an I/O failure from the object store."""


class ObjectNotFoundError(FileNotFoundError):
    """Raised by object store clients when a path does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Object not found: {path}")
        self.path = path
