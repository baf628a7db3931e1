"""Format tabular data into a text table for print.

the `tabulate` function takes a `pyarrow.RecordBatch` and formats it into a text table.
It will truncate long strings, format floats to 2 decimal places, show missing
values as ``NA`` and limit the number of rows to display.
It's what is used to print a :class:`tidyground.relation.Relation`.

Example:

    >>> import pyarrow as pa
    >>> data = {
    ...     "name": ["Cheetah", "Owl monkey", "Cow"],
    ...     "sleep_total": [12.1, 17.0, None],
    ...     "vore": ["carni", "omni", "herbi"],
    ... }
    >>> table = pa.RecordBatch.from_pydict(data)
    >>> print(tabulate(table))
    name       | sleep_total | vore
    ---------- | ----------- | -----
    Cheetah    | 12.10       | carni
    Owl monkey | 17.00       | omni
    Cow        | NA          | herbi
"""

from typing import Any

from pyarrow import RecordBatch

from ..kinds import to_text

MISSING_VALUE = "NA"


def tabulate(recordbatch: RecordBatch, max_rows: int = 20) -> str:
    """Format a RecordBatch into a text table.

    Will produce a string like::

        movie | year | won
        ----- | ---- | -----
        Room  | 2015 | TRUE
        Carol | 2015 | FALSE
    """
    cols = recordbatch.column_names
    rows = [
        [format_value(row[c]) for c in cols]
        for row in recordbatch.slice(length=max_rows).to_pylist()
    ]

    colsizes = compute_max_colsize(cols, rows)
    header = [maketablerow(cols, colsizes=colsizes)]
    separator = [maketablerow(["-"] * len(cols), colsizes=colsizes, fillvalue="-")]
    textrows = [maketablerow(row, colsizes=colsizes) for row in rows]

    table = "\n".join(header + separator + textrows)
    if recordbatch.num_rows > max_rows:
        table += f"\n... and {recordbatch.num_rows - max_rows} more rows"
    return table


def compute_max_colsize(cols: list[str], rows: list[list[str]]) -> list[int]:
    """Compute the maximum size of each column in a table."""
    return [
        max([len(row[colidx]) for row in rows] + [len(cols[colidx])])
        for colidx, _ in enumerate(cols)
    ]


def maketablerow(cols: list[str], colsizes: list[int], fillvalue: str = " ") -> str:
    """Make a table row with the given column sizes.

    Trailing spaces are stripped, so that the last column
    doesn't get padded.
    """
    return " | ".join(
        [col.ljust(colsizes[idx], fillvalue) for idx, col in enumerate(cols)]
    ).rstrip(" ")


def format_value(v: Any) -> str:
    """Format a value to be printed in the table.

    This function will format floats to 2 decimal places,
    missing values as ``NA`` and truncate long strings.
    """
    if v is None:
        return MISSING_VALUE
    if isinstance(v, float):
        return f"{v:.2f}"

    v = to_text(v)
    if len(v) > 30:
        v = v[:27] + "..."
    return v
