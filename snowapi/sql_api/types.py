"""Type conversion utilities for SQL API results.

The service returns every cell as a string (or null). These helpers map
cells to Python values using the column descriptors in ``rowType``.
"""

from __future__ import annotations

import datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Callable, Sequence

if TYPE_CHECKING:
    from .models import ColumnMeta

_EPOCH = datetime.date(1970, 1, 1)


def _to_fixed(value: str, column: ColumnMeta) -> int | Decimal:
    if column.scale:
        return Decimal(value)
    try:
        return int(value)
    except ValueError:
        # FIXED columns of unknown scale may still carry a fraction
        return Decimal(value)


def _to_boolean(value: str, column: ColumnMeta) -> bool:
    return value.strip().lower() in ("true", "1", "t", "yes")


def _to_date(value: str, column: ColumnMeta) -> datetime.date:
    # Dates arrive as days since the epoch
    return _EPOCH + datetime.timedelta(days=int(value))


# Mapping from Snowflake type names to converters
CONVERTERS: dict[str, Callable[[str, "ColumnMeta"], Any]] = {
    "FIXED": _to_fixed,
    "REAL": lambda value, column: float(value),
    "BOOLEAN": _to_boolean,
    "DATE": _to_date,
}


def convert_value(value: Any, column: ColumnMeta) -> Any:
    """Convert one cell to a Python value.

    Args:
        value: Raw cell from ``data``
        column: Descriptor of the cell's column

    Returns:
        Converted value; unknown types and unparseable cells are returned as-is
    """
    if value is None or not isinstance(value, str):
        return value

    converter = CONVERTERS.get(column.type.upper())
    if converter is None:
        return value

    try:
        return converter(value, column)
    except (ValueError, InvalidOperation, OverflowError):
        return value


def convert_row(row: Sequence[Any], row_type: Sequence[ColumnMeta]) -> list[Any]:
    """Convert a row's cells, column by column.

    Cells beyond the described columns are passed through unchanged.
    """
    return [
        convert_value(value, row_type[i]) if i < len(row_type) else value
        for i, value in enumerate(row)
    ]
