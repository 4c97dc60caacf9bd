"""Command line interface for browsing and querying object tables."""

from __future__ import annotations

import time
from typing import List, Optional

import click
import duckdb
import pyarrow as pa
from sqlglot import errors as sqlglot_errors

from ..config import Config, load_config
from ..datasources.object_store import ObjectStoreDataSource
from ..exceptions import ObjectTablesError
from ..partitions.constraints import constraints_from_where
from ..utils.logging import setup_logging

HANDLED_ERRORS = (
    ObjectTablesError,
    ValueError,
    FileNotFoundError,
    duckdb.Error,
    sqlglot_errors.ParseError,
)


class ResultPrinter:
    """Formats Arrow tables for CLI display."""

    def __init__(self, emit):
        self.emit = emit

    def display(self, table: pa.Table, elapsed_ms: Optional[float] = None) -> None:
        headers = list(table.schema.names)
        rows = self._build_rows(table)
        for line in self._format_table(headers, rows):
            self.emit(line)
        if elapsed_ms is not None:
            self.emit(f"{table.num_rows} rows in {elapsed_ms:.2f} ms")

    def display_rows(self, headers: List[str], rows: List[List[object]]) -> None:
        for line in self._format_table(headers, rows):
            self.emit(line)

    def _build_rows(self, table: pa.Table) -> List[List[object]]:
        columns = [table.column(index).to_pylist() for index in range(table.num_columns)]
        rows: List[List[object]] = []
        for row_index in range(table.num_rows):
            rows.append([column[row_index] for column in columns])
        return rows

    def _format_table(self, headers: List[str], rows: List[List[object]]) -> List[str]:
        string_rows = [self._stringify_row(row) for row in rows]
        widths = self._compute_widths(headers, string_rows)
        border = self._build_border(widths)
        lines: List[str] = [border, self._format_row(headers, widths), border]
        for values in string_rows:
            lines.append(self._format_row(values, widths))
        lines.append(border)
        return lines

    def _compute_widths(self, headers: List[str], rows: List[List[str]]) -> List[int]:
        widths = [len(header) for header in headers]
        for row in rows:
            for index, text in enumerate(row):
                if len(text) > widths[index]:
                    widths[index] = len(text)
        return widths

    def _build_border(self, widths: List[int]) -> str:
        parts = ["+"]
        for width in widths:
            parts.append("-" * (width + 2))
            parts.append("+")
        return "".join(parts)

    def _format_row(self, values: List[str], widths: List[int]) -> str:
        parts = ["|"]
        for value, width in zip(values, widths):
            parts.append(f" {value.ljust(width)} ")
            parts.append("|")
        return "".join(parts)

    def _stringify_row(self, row: List[object]) -> List[str]:
        return [self._stringify_cell(value) for value in row]

    def _stringify_cell(self, value: object) -> str:
        if value is None:
            return "NULL"
        return str(value)


def _load_config_bundle(config_path: Optional[str]) -> Config:
    if config_path:
        return load_config(config_path)
    return Config()


def _build_datasource(ctx: click.Context) -> ObjectStoreDataSource:
    config: Config = ctx.obj["config"]
    return ObjectStoreDataSource("objtables", config)


def _fail(exc: Exception) -> None:
    raise click.ClickException(str(exc))


@click.group()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Path to YAML config file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str]) -> None:
    """Browse and query directories of JSON objects as tables."""
    config = _load_config_bundle(config_path)
    setup_logging(
        level=config.logging.level,
        structured=config.logging.structured,
        log_file=config.logging.log_file,
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.pass_context
def schemas(ctx: click.Context) -> None:
    """List configured schemas."""
    datasource = _build_datasource(ctx)
    for name in datasource.list_schemas():
        click.echo(name)


@cli.command()
@click.argument("schema")
@click.pass_context
def tables(ctx: click.Context, schema: str) -> None:
    """List the tables declared in a schema's manifest."""
    datasource = _build_datasource(ctx)
    try:
        names = datasource.list_tables(schema)
    except HANDLED_ERRORS as exc:
        _fail(exc)
    for name in names:
        click.echo(name)


@cli.command()
@click.argument("schema")
@click.argument("table")
@click.pass_context
def columns(ctx: click.Context, schema: str, table: str) -> None:
    """Show the columns of a table, inferring them if necessary."""
    datasource = _build_datasource(ctx)
    try:
        metadata = datasource.get_table_metadata(schema, table)
    except HANDLED_ERRORS as exc:
        _fail(exc)
    rows = []
    for column in metadata.columns:
        rows.append([column.name, column.data_type, "yes" if column.hidden else "", column.comment])
    ResultPrinter(click.echo).display_rows(["column", "type", "hidden", "comment"], rows)


@cli.command()
@click.argument("schema")
@click.argument("table")
@click.option("--where", "where", default=None, help="WHERE clause used to prune partitions.")
@click.pass_context
def splits(ctx: click.Context, schema: str, table: str, where: Optional[str]) -> None:
    """List the data objects a scan of the table would read."""
    datasource = _build_datasource(ctx)
    try:
        handle = datasource.get_table_handle(schema, table)
        logical_table = datasource.registry.get_table(schema, table)
        names = [column.name for column in logical_table.partition_columns()]
        constraints = constraints_from_where(where, names, dialect=datasource.dialect)
        layout = datasource.get_table_layout(handle, constraints)
        found = datasource.list_all_splits(layout)
    except HANDLED_ERRORS as exc:
        _fail(exc)
    for split in found:
        size = "" if split.content_length is None else f"\t{split.content_length}"
        click.echo(f"{split.object_path}{size}")


@cli.command()
@click.argument("sql")
@click.pass_context
def query(ctx: click.Context, sql: str) -> None:
    """Run a SQL statement against object tables."""
    printer = ResultPrinter(click.echo)
    with _build_datasource(ctx) as datasource:
        try:
            start = time.time()
            batches = list(datasource.execute_query(sql.strip().rstrip(";")))
            elapsed = (time.time() - start) * 1000
            if batches:
                table = pa.Table.from_batches(batches)
            else:
                table = datasource.get_query_schema(sql.strip().rstrip(";")).empty_table()
        except HANDLED_ERRORS as exc:
            _fail(exc)
    printer.display(table, elapsed)


def main() -> None:
    """Entry point for the objtables command."""
    cli(obj={})


if __name__ == "__main__":
    main()
