"""
Tabular content for Table shapes

A TableContent is the minimal cell-access view the serializer needs:
column names plus rows of scalars. as_table_content() adapts the plain
Python containers (and DataFrame-like objects) callers usually have.
"""

from collections.abc import Mapping
from typing import Any, List, Optional, Sequence


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


class TableContent:
    """Column names + rows, exposed as a grid whose row 0 is the header"""

    def __init__(self, columns: Sequence[Any], rows: Sequence[Sequence[Any]] = ()):
        self.columns: List[str] = [_cell_text(c) for c in columns]
        self.rows: List[List[Any]] = []
        for row in rows:
            row = list(row)
            if len(row) != len(self.columns):
                raise ValueError(
                    f"Row has {len(row)} values but the table has {len(self.columns)} columns"
                )
            self.rows.append(row)

    def row_count(self) -> int:
        """Number of table rows, header included"""
        return len(self.rows) + 1

    def column_count(self) -> int:
        return len(self.columns)

    def cell(self, i: int, j: int) -> str:
        """Text of the cell at row i, column j (row 0 is the header)"""
        if i == 0:
            return self.columns[j]
        return _cell_text(self.rows[i - 1][j])

    def __repr__(self):
        return f"TableContent({self.column_count()} columns, {len(self.rows)} rows)"


def as_table_content(content: Any, columns: Optional[Sequence[Any]] = None) -> TableContent:
    """
    Adapt a tabular source to TableContent

    Supported sources:
    - TableContent (returned as-is)
    - mapping of column name -> sequence of values
    - sequence of mappings (records); columns come from the first record
    - sequence of row sequences, with explicit columns
    - objects exposing `columns` and `itertuples(index=False)` (DataFrame-like)

    Args:
        content: Tabular source
        columns: Column names, required for plain row sequences

    Returns:
        TableContent view of the source
    """
    if isinstance(content, TableContent):
        return content

    if hasattr(content, 'columns') and hasattr(content, 'itertuples'):
        return TableContent(list(content.columns), [tuple(r) for r in content.itertuples(index=False)])

    if isinstance(content, Mapping):
        names = list(content.keys())
        values = [list(content[name]) for name in names]
        lengths = {len(v) for v in values}
        if len(lengths) > 1:
            raise ValueError("All columns must have the same number of values")
        return TableContent(names, list(zip(*values)))

    if isinstance(content, (str, bytes)):
        raise TypeError("Table content must be tabular, not a string")

    records = list(content)
    if records and isinstance(records[0], Mapping):
        names = list(columns) if columns is not None else list(records[0].keys())
        return TableContent(names, [[record.get(name) for name in names] for record in records])

    if columns is None:
        raise ValueError("Column names are required for row sequences")
    return TableContent(columns, records)
