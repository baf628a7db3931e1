"""The Relation object itself."""

import datetime
import logging
from typing import Any, Callable, Iterable, Mapping, Self

import pyarrow as pa

from ..compute import (
    AggregateNode,
    Aggregation,
    ArrangeNode,
    FilterNode,
    GatherNode,
    JoinNode,
    JoinType,
    MutateNode,
    PyArrowTableDataSource,
    SelectNode,
    SeparateNode,
    SpreadNode,
    UniteNode,
    materialize,
    partition,
)
from ..compute.base import QueryPlanNode, check_columns
from ..compute.expressions import Expression
from ..compute.selectors import ColumnSelector
from ..errors import SchemaMismatch
from ..kinds import Kind, accepts, arrow_type_for, kind_of
from ..utils import tabulate

logger = logging.getLogger(__name__)


class Relation:
    """Data structure that handles data in rows and columns.

    The Relation object holds in-memory data and allows
    to transform it through verbs. Verbs never modify the relation
    they are invoked on, they always return a new Relation.

    The TidyGround relation is eager, each verb is executed
    immediately by the compute engine and the result
    is kept in memory, ready to be inspected.
    """

    def __init__(self, data: QueryPlanNode | pa.Table | pa.RecordBatch) -> None:
        """
        :param data: A compute engine node expected to emit
                     the data for the relation, or a `pyarrow.Table`
                     or `pyarrow.RecordBatch` holding it.
        """
        if isinstance(data, (pa.Table, pa.RecordBatch)):
            data = PyArrowTableDataSource(data)

        if not isinstance(data, QueryPlanNode):
            raise ValueError("Invalid input, expected a QueryPlanNode or a PyArrow Table")

        batch = materialize(data)
        names = batch.schema.names
        if len(set(names)) != len(names):
            duplicated = next(name for name in names if names.count(name) > 1)
            raise SchemaMismatch("duplicate column name", stage="relation", column=duplicated)
        self._batch = batch

    @classmethod
    def from_columns(cls, columns: Mapping[str, Iterable[Any]]) -> Self:
        """Create a Relation out of a dictionary of columns.

        >>> Relation.from_columns({"movie": ["Room", "Carol"], "year": [2015, 2015]}).rows()
        [{'movie': 'Room', 'year': 2015}, {'movie': 'Carol', 'year': 2015}]
        """
        return cls(pa.table({name: list(values) for name, values in columns.items()}))

    @classmethod
    def with_rows(cls, rows: Iterable[Mapping[str, Any]], kinds: Mapping[str, Kind]) -> Self:
        """Create a Relation out of rows and the kinds of its columns.

        The kinds declare the columns of the relation and their order,
        every row must provide exactly those columns.

        >>> rel = Relation.with_rows(
        ...     [{"name": "Cheetah", "sleep_total": 12.1}, {"name": "Owl monkey", "sleep_total": None}],
        ...     {"name": Kind.TEXT, "sleep_total": Kind.NUMERIC},
        ... )
        >>> rel.columns()
        ['name', 'sleep_total']
        >>> rel.rows()[1]
        {'name': 'Owl monkey', 'sleep_total': None}

        :param rows: The rows, each one a mapping from column name to value.
        :param kinds: The ordered mapping of column names to the kind of their values.
        """
        names = list(kinds)
        expected = set(names)
        values: dict[str, list[Any]] = {name: [] for name in names}
        for row_index, row in enumerate(rows):
            if set(row) != expected or len(row) != len(names):
                raise SchemaMismatch(
                    f"row {row_index} has columns {sorted(row)}, expected {names}",
                    stage="with_rows",
                )
            for name in names:
                value = row[name]
                if not accepts(kinds[name], value):
                    raise SchemaMismatch(
                        f"row {row_index} holds a value that is not {kinds[name].value}",
                        stage="with_rows",
                        column=name,
                        value=value,
                    )
                values[name].append(value)

        arrays = []
        for name in names:
            datatype = arrow_type_for(kinds[name], values[name])
            column_values = values[name]
            if pa.types.is_timestamp(datatype):
                # Plain dates in a column with times of day start at midnight.
                column_values = [
                    datetime.datetime.combine(v, datetime.time())
                    if isinstance(v, datetime.date) and not isinstance(v, datetime.datetime)
                    else v
                    for v in column_values
                ]
            arrays.append(pa.array(column_values, type=datatype))
        return cls(pa.record_batch(arrays, names=names) if names else pa.table({}))

    def columns(self) -> list[str]:
        """The names of the columns, in order."""
        return list(self._batch.schema.names)

    def kinds(self) -> dict[str, Kind]:
        """The kind of values held by each column."""
        return {field.name: kind_of(field.type) for field in self._batch.schema}

    def rows(self) -> list[dict[str, Any]]:
        """The rows of the relation, each one a dictionary of column values.

        Missing values are reported as ``None``.
        """
        return self._batch.to_pylist()

    @property
    def num_rows(self) -> int:
        return self._batch.num_rows

    def __len__(self) -> int:
        return self._batch.num_rows

    def with_columns(self, names: list[str]) -> Self:
        """Return a new Relation with only the listed columns, in the listed order.

        :param names: The names of the columns to keep.
        """
        check_columns(self._batch, names, "with_columns")
        return self.__class__(self._batch.select(list(names)))

    def to_arrow(self) -> pa.Table:
        """Return the data of the relation as a pyarrow.Table"""
        return pa.Table.from_batches([self._batch])

    def equals(self, other: "Relation") -> bool:
        """If the two relations hold the same columns, types and values."""
        return self._batch.equals(other._batch)

    def pipe(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Call a function passing the relation as its first argument.

        Allows to insert custom steps in a chain of verbs::

            rel.pipe(remove_outliers, "sleep_total").arrange("sleep_total")
        """
        return func(self, *args, **kwargs)

    def __str__(self) -> str:
        return tabulate.tabulate(self._batch)

    def __repr__(self) -> str:
        return f"Relation(columns={self.columns()}, rows={self.num_rows})"

    def _source(self) -> PyArrowTableDataSource:
        return PyArrowTableDataSource(self._batch)

    # Column and row verbs

    def select(self, *selectors: str | ColumnSelector) -> Self:
        """Keep only the selected columns.

        :param selectors: Column names or :class:`ColumnSelector` instances.
        """
        return self.__class__(SelectNode(list(selectors), self._source()))

    def filter(self, predicate: Expression) -> Self:
        """Keep only the rows for which the predicate is true.

        :param predicate: The expression representing the predicate,
                          for example ``sleep_total > 16``.
        """
        return self.__class__(FilterNode(predicate, self._source()))

    def mutate(self, **expressions: Expression) -> Self:
        """Add new columns, or replace existing ones, computed by expressions."""
        return self.__class__(MutateNode(expressions, self._source()))

    def arrange(self, *keys: str, descending: bool | list[bool] = False) -> Self:
        """Sort the rows by the values of the key columns.

        :param keys: The columns to sort by.
        :param descending: Sort direction, for all the keys or for each one of them.
        """
        if isinstance(descending, bool):
            descending = [descending] * len(keys)
        return self.__class__(ArrangeNode(list(keys), descending, self._source()))

    # Reshaping verbs

    def gather(self, key: str, value: str, *selectors: str | ColumnSelector) -> Self:
        """Turn the selected columns into key-value pairs, from wide to long format.

        >>> stocks = Relation.from_columns({
        ...     "time": ["2009-01-01", "2009-01-02", "2009-01-03"],
        ...     "Google": [1.1, 1.2, 1.3],
        ...     "Facebook": [2.1, 2.2, 2.3],
        ...     "Twitter": [3.1, 3.2, 3.3],
        ... })
        >>> long = stocks.gather("company", "price", "Google", "Facebook", "Twitter")
        >>> long.columns(), len(long)
        (['time', 'company', 'price'], 9)
        """
        return self.__class__(GatherNode(key, value, list(selectors), self._source()))

    def spread(self, key: str, value: str, fill: Any = None) -> Self:
        """Turn key-value pairs into columns, from long to wide format."""
        return self.__class__(SpreadNode(key, value, self._source(), fill=fill))

    def separate(self, column: str, into: list[str], sep: str, convert: bool = False) -> Self:
        """Split a column into multiple columns.

        >>> Relation.from_columns({"date": ["2016-01-05"]}).separate("date", ["y", "m", "d"], "-").rows()
        [{'y': '2016', 'm': '01', 'd': '05'}]
        """
        return self.__class__(SeparateNode(column, into, sep, self._source(), convert=convert))

    def unite(self, target: str, *columns: str, sep: str = "_", skip_missing: bool = False) -> Self:
        """Paste multiple columns together into a single one.

        >>> Relation.from_columns({"y": ["2016"], "m": ["01"], "d": ["05"]}).unite("date", "y", "m", "d", sep="/").rows()
        [{'date': '2016/01/05'}]
        """
        return self.__class__(
            UniteNode(target, list(columns), sep, self._source(), skip_missing=skip_missing)
        )

    # Grouping and summarizing

    def group_by(self, *keys: str) -> "GroupedRelation":
        """Group the rows by the values of the key columns."""
        return GroupedRelation(self, list(keys))

    def summarize(self, **aggregations: Aggregation) -> Self:
        """Summarize all the rows in a single row of aggregations."""
        return self.__class__(AggregateNode([], aggregations, self._source()))

    # Joins

    def inner_join(self, other: "Relation", by: "str | list[str] | dict[str, str] | None" = None, suffix: str = "_right") -> Self:
        """Rows of both relations with matching keys."""
        return self._join(other, by, JoinType.INNER, suffix)

    def left_join(self, other: "Relation", by: "str | list[str] | dict[str, str] | None" = None, suffix: str = "_right") -> Self:
        """All rows of this relation, with the matching columns of the other."""
        return self._join(other, by, JoinType.LEFT, suffix)

    def right_join(self, other: "Relation", by: "str | list[str] | dict[str, str] | None" = None, suffix: str = "_right") -> Self:
        """All rows of the other relation, with the matching columns of this one."""
        return self._join(other, by, JoinType.RIGHT, suffix)

    def full_join(self, other: "Relation", by: "str | list[str] | dict[str, str] | None" = None, suffix: str = "_right") -> Self:
        """All rows of both relations, matched when possible."""
        return self._join(other, by, JoinType.FULL, suffix)

    def semi_join(self, other: "Relation", by: "str | list[str] | dict[str, str] | None" = None) -> Self:
        """Rows of this relation that have a match in the other one."""
        return self._join(other, by, JoinType.SEMI)

    def anti_join(self, other: "Relation", by: "str | list[str] | dict[str, str] | None" = None) -> Self:
        """Rows of this relation that have no match in the other one."""
        return self._join(other, by, JoinType.ANTI)

    def _join(
        self,
        other: "Relation",
        by: "str | list[str] | dict[str, str] | None",
        how: JoinType,
        suffix: str = "_right",
    ) -> Self:
        """Join with another relation.

        ``by`` can be a column name, a list of column names
        existing in both relations, or a dictionary mapping
        the columns of this relation to the columns of the other one.
        When not provided all the columns with the same name are used.
        """
        if by is None:
            other_columns = set(other.columns())
            by = [name for name in self.columns() if name in other_columns]
            if not by:
                raise ValueError("No common columns to join by, provide the join keys")
            logger.info("%s_join by %s", how.value, by)
        if isinstance(by, str):
            by = [by]
        if isinstance(by, Mapping):
            left_keys, right_keys = list(by.keys()), list(by.values())
        else:
            left_keys, right_keys = list(by), list(by)

        return self.__class__(
            JoinNode(left_keys, right_keys, self._source(), other._source(), how=how, suffix=suffix)
        )


class GroupedRelation:
    """A Relation whose rows are split in groups.

    Grouping by itself doesn't change the data,
    it affects how the following :meth:`summarize` is computed:
    one row is produced for each group instead of a single row.

    >>> from tidyground.compute import MeanAggregation
    >>> msleep = Relation.from_columns({
    ...     "order": ["Carnivora", "Primates", "Carnivora"],
    ...     "sleep_total": [12.0, 17.0, 16.0],
    ... })
    >>> msleep.group_by("order").summarize(avg_sleep=MeanAggregation("sleep_total")).rows()
    [{'order': 'Carnivora', 'avg_sleep': 14.0}, {'order': 'Primates', 'avg_sleep': 17.0}]
    """

    def __init__(self, relation: Relation, keys: list[str]) -> None:
        """
        :param relation: The relation being grouped.
        :param keys: The columns whose values identify the groups.
        """
        check_columns(relation._batch, keys, "group_by")
        self.relation = relation
        self.keys = keys

    def __repr__(self) -> str:
        return f"GroupedRelation(keys={self.keys}, {self.relation!r})"

    def partitions(self) -> list[tuple[tuple, list[int]]]:
        """The ``(key values, row indices)`` of each group, in order of first appearance."""
        return partition(self.relation._batch, self.keys)

    def groups(self) -> list[tuple[tuple, Relation]]:
        """The ``(key values, rows)`` of each group, in order of first appearance."""
        batch = self.relation._batch
        return [
            (keyvalue, self.relation.__class__(batch.take(pa.array(indices, type=pa.int64()))))
            for keyvalue, indices in self.partitions()
        ]

    def summarize(self, **aggregations: Aggregation) -> Relation:
        """Compute the aggregations for each group, one row per group."""
        return self.relation.__class__(
            AggregateNode(self.keys, aggregations, self.relation._source())
        )

    def ungroup(self) -> Relation:
        return self.relation
