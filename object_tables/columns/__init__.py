"""Column discovery for logical tables."""

from .base import ColumnLister
from .predefined import PredefinedColumnLister
from .peeking import PeekingColumnLister, read_first_line
from .json_lister import JsonColumnLister, infer_column, numeric_type, find_date_format
from .telegraf import TelegrafColumnLister, TELEGRAF_COLUMNS
from .router import ColumnListerRouter

__all__ = [
    "ColumnLister",
    "PredefinedColumnLister",
    "PeekingColumnLister",
    "read_first_line",
    "JsonColumnLister",
    "infer_column",
    "numeric_type",
    "find_date_format",
    "TelegrafColumnLister",
    "TELEGRAF_COLUMNS",
    "ColumnListerRouter",
]
