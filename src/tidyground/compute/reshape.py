"""Query plan nodes that reshape data.

The same data can be laid out in *wide* format,
one row per entity with one column for each measurement::

    time       | Google | Facebook | Twitter
    ---------- | ------ | -------- | -------
    2016-01-01 | 10.1   | 4.2      | 1.3
    2016-01-02 | 10.5   | 4.1      | 1.2

or in *long* format, with one row for each observation::

    time       | company  | price
    ---------- | -------- | -----
    2016-01-01 | Google   | 10.1
    2016-01-02 | Google   | 10.5
    2016-01-01 | Facebook | 4.2
    ...

Most verbs work best with data in long format, while
people usually find easier to read the wide one.
This module implements the nodes that move from one
format to the other (:class:`GatherNode` and :class:`SpreadNode`)
and the ones that split or merge the values of columns
(:class:`SeparateNode` and :class:`UniteNode`).
"""

import logging
from typing import Any, Iterable

import pyarrow as pa

from ..errors import (
    DuplicateKey,
    EmptySelection,
    KindMismatch,
    NameCollision,
    SplitArityMismatch,
)
from ..kinds import cast_values, common_type, to_text
from .base import QueryPlanNode, check_columns, materialize
from .selectors import ColumnSelector, resolve_selection

__all__ = ("GatherNode", "SpreadNode", "SeparateNode", "UniteNode")

logger = logging.getLogger(__name__)

MISSING_KEY_NAME = "NA"


class GatherNode(QueryPlanNode):
    """Turn columns into rows, moving from wide to long format.

    The selected columns are replaced by two new columns,
    the ``key`` one holding the name of the original column
    and the ``value`` one holding the value it had for that row.
    The other columns are repeated for each selected column.

    >>> from tidyground.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({
    ...     "time": ["d1", "d2"],
    ...     "Google": [10.1, 10.5],
    ...     "Twitter": [1.3, 1.2],
    ... })
    >>> gather = GatherNode("company", "price", ["Google", "Twitter"], PyArrowTableDataSource(data))
    >>> next(gather.batches()).to_pydict()
    {'time': ['d1', 'd2', 'd1', 'd2'], 'company': ['Google', 'Google', 'Twitter', 'Twitter'], 'price': [10.1, 10.5, 1.3, 1.2]}
    """

    def __init__(
        self,
        key: str,
        value: str,
        selector: ColumnSelector | str | Iterable,
        child: QueryPlanNode,
    ) -> None:
        """
        :param key: Name of the new column that will hold the gathered column names.
        :param value: Name of the new column that will hold the gathered values.
        :param selector: Which columns have to be gathered.
        :param child: The node emitting the data to reshape.
        """
        self.key = key
        self.value = value
        self.selector = selector
        self.child = child

    def __str__(self) -> str:
        return f"GatherNode(key={self.key}, value={self.value}, selector={self.selector}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Stack the selected columns one after the other.

        The rows of the first selected column come first,
        then all the rows for the second selected column and so on.
        So for ``r`` input rows and ``n`` selected columns
        we will emit ``r * n`` rows.
        """
        batch = materialize(self.child)
        selected = resolve_selection(self.selector, batch.schema.names, "gather")
        if not selected:
            raise EmptySelection("no columns selected to gather", stage="gather")

        kept = [name for name in batch.schema.names if name not in selected]
        if self.key == self.value:
            raise NameCollision("key and value columns must have different names", stage="gather", column=self.key)
        for name in (self.key, self.value):
            if name in kept:
                raise NameCollision("column already exists", stage="gather", column=name)

        # Each kept column is repeated once for every selected column,
        # as the rows of each gathered column are stacked one after the other.
        repeats = len(selected)
        data = {name: pa.concat_arrays([batch.column(name)] * repeats) for name in kept}
        data[self.key] = pa.array(
            [name for name in selected for _ in range(batch.num_rows)], type=pa.string()
        )

        gathered = [batch.column(name) for name in selected]
        value_type = common_type([arr.type for arr in gathered])
        data[self.value] = pa.concat_arrays(
            [cast_values(arr, value_type) for arr in gathered]
        )

        logger.debug(
            "gather %s into (%s, %s): %d rows -> %d rows",
            selected, self.key, self.value, batch.num_rows, batch.num_rows * repeats,
        )
        yield pa.record_batch(data)


class SpreadNode(QueryPlanNode):
    """Turn rows into columns, moving from long to wide format.

    Spreading is the inverse of gathering: all the rows sharing
    the same values in the other columns are merged in a single row,
    and each distinct value of the ``key`` column becomes a new
    column holding the matching ``value``.

    >>> from tidyground.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({
    ...     "time": ["d1", "d2", "d1", "d2"],
    ...     "company": ["Google", "Google", "Twitter", "Twitter"],
    ...     "price": [10.1, 10.5, 1.3, 1.2],
    ... })
    >>> spread = SpreadNode("company", "price", PyArrowTableDataSource(data))
    >>> next(spread.batches()).to_pydict()
    {'time': ['d1', 'd2'], 'Google': [10.1, 10.5], 'Twitter': [1.3, 1.2]}
    """

    def __init__(self, key: str, value: str, child: QueryPlanNode, fill: Any = None) -> None:
        """
        :param key: The column whose values become the names of the new columns.
        :param value: The column whose values populate the new columns.
        :param child: The node emitting the data to reshape.
        :param fill: Value for the combinations that do not exist in the data,
                     by default they are reported as missing.
                     It must fit the type of the ``value`` column.
        """
        self.key = key
        self.value = value
        self.child = child
        self.fill = fill

    def __str__(self) -> str:
        return f"SpreadNode(key={self.key}, value={self.value}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Spread the key-value pairs into columns.

        First the rows are grouped by the values of all the
        other columns, in the order the groups are first seen.
        Then for each group we record the value of each key,
        refusing to pick one when a key shows up twice in a group.
        """
        batch = materialize(self.child)
        check_columns(batch, [self.key, self.value], "spread")
        id_columns = [
            name for name in batch.schema.names if name not in (self.key, self.value)
        ]

        id_values = [batch.column(name).to_pylist() for name in id_columns]
        keys = batch.column(self.key).to_pylist()
        values = batch.column(self.value).to_pylist()

        # new column name -> key value, in order of first appearance.
        spread_columns: dict[str, Any] = {}
        # group identity -> (first row of the group, {key value: value})
        groups: dict[tuple, tuple[int, dict[Any, Any]]] = {}
        for row_index, (key, value) in enumerate(zip(keys, values)):
            column_name = MISSING_KEY_NAME if key is None else to_text(key)
            known_key = spread_columns.setdefault(column_name, key)
            if known_key is not key and known_key != key:
                raise NameCollision(
                    "different keys would produce the same column",
                    stage="spread",
                    column=column_name,
                    value=key,
                )

            group_id = tuple(column[row_index] for column in id_values)
            _, cells = groups.setdefault(group_id, (row_index, {}))
            if key in cells:
                raise DuplicateKey(
                    f"more than one value for the same key in group {group_id!r}",
                    stage="spread",
                    column=self.key,
                    value=key,
                )
            cells[key] = value

        for name in spread_columns:
            if name in id_columns:
                raise NameCollision("spread column already exists", stage="spread", column=name)

        first_rows = pa.array([first_row for first_row, _ in groups.values()], type=pa.int64())
        data = {name: batch.column(name).take(first_rows) for name in id_columns}
        value_type = batch.schema.field(self.value).type
        if self.fill is not None:
            if pa.types.is_null(value_type):
                value_type = pa.array([self.fill]).type
            try:
                pa.scalar(self.fill, type=value_type)
            except (pa.ArrowInvalid, pa.ArrowTypeError) as err:
                raise KindMismatch(
                    f"fill value does not fit the {value_type} values",
                    stage="spread",
                    column=self.value,
                    value=self.fill,
                ) from err
        for name, key in spread_columns.items():
            data[name] = pa.array(
                [cells.get(key, self.fill) for _, cells in groups.values()], type=value_type
            )

        logger.debug(
            "spread %s over %d groups into %d columns",
            self.key, len(groups), len(spread_columns),
        )
        yield pa.record_batch(data)


class SeparateNode(QueryPlanNode):
    """Split the values of a column into multiple columns.

    Each value is split by a literal delimiter and each
    piece goes into one of the ``into`` columns, which take
    the place of the original column.

    >>> from tidyground.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"date": ["2016-01-05", None], "n": [1, 2]})
    >>> separate = SeparateNode("date", ["y", "m", "d"], "-", PyArrowTableDataSource(data))
    >>> next(separate.batches()).to_pydict()
    {'y': ['2016', None], 'm': ['01', None], 'd': ['05', None], 'n': [1, 2]}
    """

    def __init__(
        self,
        column: str,
        into: list[str],
        sep: str,
        child: QueryPlanNode,
        convert: bool = False,
    ) -> None:
        """
        :param column: The column whose values have to be split.
        :param into: The names of the columns that will receive the pieces.
        :param sep: The delimiter the values are split by.
        :param child: The node emitting the data to split.
        :param convert: Convert the new columns to numbers when all their values are numbers.
        """
        if not into:
            raise ValueError("At least one target column is required")
        if not sep:
            raise ValueError("The delimiter can't be empty")

        self.column = column
        self.into = list(into)
        self.sep = sep
        self.child = child
        self.convert = convert

    def __str__(self) -> str:
        return f"SeparateNode(column={self.column}, into={self.into}, sep={self.sep!r}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        batch = materialize(self.child)
        check_columns(batch, [self.column], "separate")
        others = [name for name in batch.schema.names if name != self.column]
        for name in self.into:
            if name in others or self.into.count(name) > 1:
                raise NameCollision("target column already exists", stage="separate", column=name)

        pieces: list[list[str | None]] = [[] for _ in self.into]
        for value in batch.column(self.column).to_pylist():
            if value is None:
                for target in pieces:
                    target.append(None)
                continue

            split = to_text(value).split(self.sep)
            if len(split) != len(self.into):
                raise SplitArityMismatch(
                    f"expected {len(self.into)} pieces, got {len(split)}",
                    stage="separate",
                    column=self.column,
                    value=value,
                )
            for target, piece in zip(pieces, split):
                target.append(piece)

        targets = {
            name: _convert_text(values) if self.convert else pa.array(values, type=pa.string())
            for name, values in zip(self.into, pieces)
        }
        data = {}
        for name in batch.schema.names:
            if name == self.column:
                data.update(targets)
            else:
                data[name] = batch.column(name)
        yield pa.record_batch(data)


class UniteNode(QueryPlanNode):
    """Paste together the values of multiple columns into one.

    The new column is placed where the first of the united
    columns was, and the united columns are removed.

    >>> from tidyground.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"y": ["2016"], "m": ["01"], "d": ["05"]})
    >>> unite = UniteNode("date", ["y", "m", "d"], "/", PyArrowTableDataSource(data))
    >>> next(unite.batches()).to_pydict()
    {'date': ['2016/01/05']}
    """

    def __init__(
        self,
        target: str,
        columns: list[str],
        sep: str,
        child: QueryPlanNode,
        skip_missing: bool = False,
    ) -> None:
        """
        :param target: The name of the new column.
        :param columns: The columns to paste together.
        :param sep: The separator placed between the values.
        :param child: The node emitting the data to unite.
        :param skip_missing: Leave out missing values instead of
                             pasting them as ``NA``.
        """
        self.target = target
        self.columns = list(columns)
        self.sep = sep
        self.child = child
        self.skip_missing = skip_missing

    def __str__(self) -> str:
        return f"UniteNode(target={self.target}, columns={self.columns}, sep={self.sep!r}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        batch = materialize(self.child)
        if not self.columns:
            raise EmptySelection("no columns to unite", stage="unite")
        check_columns(batch, self.columns, "unite")
        if self.target in batch.schema.names and self.target not in self.columns:
            raise NameCollision("column already exists", stage="unite", column=self.target)

        sources = [batch.column(name).to_pylist() for name in self.columns]
        united = []
        for row in zip(*sources):
            if self.skip_missing:
                present = [to_text(v) for v in row if v is not None]
                united.append(self.sep.join(present) if present else None)
            else:
                united.append(
                    self.sep.join(MISSING_KEY_NAME if v is None else to_text(v) for v in row)
                )

        data = {}
        for name in batch.schema.names:
            if name == self.columns[0]:
                data[self.target] = pa.array(united, type=pa.string())
            elif name not in self.columns:
                data[name] = batch.column(name)
        yield pa.record_batch(data)


def _convert_text(values: list[str | None]) -> pa.Array:
    """Convert text to integers or floats when all values allow it."""
    for converter, datatype in ((int, pa.int64()), (float, pa.float64())):
        try:
            converted = [None if v is None else converter(v) for v in values]
        except ValueError:
            continue
        return pa.array(converted, type=datatype)
    return pa.array(values, type=pa.string())

