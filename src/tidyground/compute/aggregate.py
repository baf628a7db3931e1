"""Query plan nodes that group and summarize data.

Frequently when analysing data is necessary
to compute statistics like the min, max, average, etc...
of the data, for each group of rows sharing some values.

For example, given the mammals sleep data::

    name       | order     | sleep_total
    ---------- | --------- | -----------
    Cheetah    | Carnivora | 12.1
    Owl monkey | Primates  | 17.0
    Cow        | Artiodactyla | 4.0
    Tiger      | Carnivora | 15.8

We could group by order and compute the average sleep
to get::

    order        | avg_sleep
    ------------ | ---------
    Carnivora    | 13.95
    Primates     | 17.0
    Artiodactyla | 4.0

Grouping is performed by :func:`partition`, which splits
the rows of a batch in groups, and :class:`AggregateNode`
computes the aggregations for each one of the groups.

Missing values
==============

Every aggregation accepts a ``skip_missing`` flag.
By default a single missing value makes the result of
numeric aggregations missing, as the real result can't be known.
When ``skip_missing=True`` missing values are ignored instead.
Counting aggregations always count every row.
"""

import abc
import logging
import math
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import EmptyReduction, KindMismatch, NameCollision
from ..kinds import Kind, kind_of
from .base import QueryPlanNode, check_columns, materialize

__all__ = (
    "partition",
    "AggregateNode",
    "Aggregation",
    "MeanAggregation",
    "MinAggregation",
    "MaxAggregation",
    "SumAggregation",
    "CountAggregation",
    "CountDistinctAggregation",
    "FirstAggregation",
    "LastAggregation",
    "StdDevAggregation",
)

logger = logging.getLogger(__name__)


def partition(batch: pa.RecordBatch, keys: list[str]) -> list[tuple[tuple, list[int]]]:
    """Split the rows of a batch in groups sharing the same key values.

    Returns the list of ``(key values, row indices)`` pairs,
    in the order each combination of key values is first seen.
    Missing values form a group of their own.

    When no keys are provided all the rows are part of a single group.

    >>> data = pa.record_batch({"order": ["Carnivora", "Primates", None, "Carnivora"]})
    >>> partition(data, ["order"])
    [(('Carnivora',), [0, 3]), (('Primates',), [1]), ((None,), [2])]
    """
    check_columns(batch, keys, "group_by")
    if not keys:
        return [((), list(range(batch.num_rows)))]

    key_values = [batch.column(name).to_pylist() for name in keys]
    groups: dict[tuple, list[int]] = {}
    for row_index, keyval in enumerate(zip(*key_values)):
        groups.setdefault(keyval, []).append(row_index)
    return list(groups.items())


class AggregateNode(QueryPlanNode):
    """Group data and compute aggregations.

    One row is emitted for each group, in the order the groups
    are first seen, with the key columns followed by the aggregations.

    >>> from tidyground.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({
    ...    'city': pa.array(['New York', 'New York', 'Los Angeles', 'Los Angeles', 'New York']),
    ...    'n_employees': pa.array([10, 15, 8, 12, 20])
    ... })
    >>> aggregate = AggregateNode(["city"], {"total_employees": SumAggregation("n_employees")}, PyArrowTableDataSource(data))
    >>> next(aggregate.batches()).to_pydict()
    {'city': ['New York', 'Los Angeles'], 'total_employees': [45, 20]}
    """

    def __init__(
        self,
        keys: list[str],
        aggregations: dict[str, "Aggregation"],
        child: QueryPlanNode,
    ) -> None:
        """
        :param keys: The columns to group by, ``[]`` to summarize all rows together.
        :param aggregations: The aggregations to compute in the form of {"new_col_name": Aggregation}.
        :param child: The child node that will provide the data to aggregate.
        """
        if not keys and not aggregations:
            raise ValueError("Summarizing without group keys requires at least one aggregation")
        self.keys = keys
        self.aggregations = aggregations
        self.child = child

    def __str__(self) -> str:
        return f"AggregateNode(keys={self.keys}, aggregations={self.aggregations}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Partition the data and compute the aggregations for each group."""
        batch = materialize(self.child)
        for name in self.aggregations:
            if name in self.keys:
                raise NameCollision("aggregation named as a group key", stage="summarize", column=name)
        check_columns(
            batch,
            [aggr.column for aggr in self.aggregations.values() if aggr.column is not None],
            "summarize",
        )

        groups = partition(batch, self.keys)

        # Key columns keep their original type, by taking
        # the value of the first row of each group.
        first_rows = pa.array([indices[0] for _, indices in groups if indices], type=pa.int64())
        result_batch_data: dict[str, pa.Array] = {
            name: batch.column(name).take(first_rows) for name in self.keys
        }
        for name, aggregation in self.aggregations.items():
            if aggregation.column is None:
                column = pa.nulls(batch.num_rows)
            else:
                column = batch.column(aggregation.column)
            values = []
            for keyvalue, indices in groups:
                chunk = column.take(pa.array(indices, type=pa.int64()))
                values.append(aggregation.compute(chunk, group=keyvalue))
            result_batch_data[name] = pa.array(values, type=aggregation.result_type(column.type))

        logger.debug(
            "summarized %d rows in %d groups by %s", batch.num_rows, len(groups), self.keys
        )
        yield pa.record_batch(result_batch_data)


class Aggregation(abc.ABC):
    """Base class for aggregations.

    Every aggregation is computed on the values of a
    column that belong to a single group, and returns a single value.
    """

    def __init__(self, column: str, skip_missing: bool = False, strict: bool = False) -> None:
        """
        :param column: The column to aggregate.
        :param skip_missing: Ignore missing values instead of
                             making the result missing.
        :param strict: Raise :class:`EmptyReduction` when there
                       are no values to aggregate, instead of
                       reporting the result as missing.
        """
        self.column = column
        self.skip_missing = skip_missing
        self.strict = strict

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.column})"

    __repr__ = __str__

    @abc.abstractmethod
    def compute(self, values: pa.Array, group: tuple = ()) -> Any:
        """Compute the aggregation of the values of one group."""
        ...

    def result_type(self, input_type: pa.DataType) -> pa.DataType:
        """The type of the column holding the results."""
        return input_type

    def _empty(self, group: tuple) -> None:
        if self.strict:
            raise EmptyReduction(
                f"no values to aggregate in group {group!r}", stage="summarize", column=self.column
            )
        return None


class NumericAggregation(Aggregation):
    """Aggregations like sum, mean, min and max.

    Take care of the missing values handling, so that
    subclasses only have to implement the computation
    on a set of values that is guaranteed to not be empty
    and to not contain missing values.
    """

    numeric_only = True

    def compute(self, values: pa.Array, group: tuple = ()) -> Any:
        if self.numeric_only and kind_of(values.type) not in (Kind.NUMERIC, Kind.MISSING):
            raise KindMismatch(
                f"{self.__class__.__name__} requires numbers, got {values.type}",
                stage="summarize",
                column=self.column,
            )
        if values.null_count and not self.skip_missing:
            return None

        values = values.drop_null()
        if len(values) == 0:
            return self._empty(group)
        return self._aggregate(values)

    @abc.abstractmethod
    def _aggregate(self, values: pa.Array) -> Any: ...


class SumAggregation(NumericAggregation):
    """Compute the sum of an aggregated column."""

    def _aggregate(self, values: pa.Array) -> Any:
        return pc.sum(values).as_py()

    def result_type(self, input_type: pa.DataType) -> pa.DataType:
        if pa.types.is_integer(input_type):
            return pa.int64()
        if pa.types.is_null(input_type):
            return pa.float64()
        return input_type


class MeanAggregation(NumericAggregation):
    """Compute the mean of an aggregated column."""

    def _aggregate(self, values: pa.Array) -> Any:
        return pc.mean(values).as_py()

    def result_type(self, input_type: pa.DataType) -> pa.DataType:
        return pa.float64()


class StdDevAggregation(NumericAggregation):
    """Compute the sample standard deviation of an aggregated column.

    A single value has no sample standard deviation,
    so the result is missing in that case.
    """

    def _aggregate(self, values: pa.Array) -> Any:
        if len(values) < 2:
            return None
        result = pc.stddev(values, ddof=1).as_py()
        if result is not None and math.isnan(result):
            return None
        return result

    def result_type(self, input_type: pa.DataType) -> pa.DataType:
        return pa.float64()


class MinAggregation(NumericAggregation):
    """Compute the min of an aggregated column.

    Works on any kind of values that can be ordered,
    like text or dates, not only numbers.
    """

    numeric_only = False

    def _aggregate(self, values: pa.Array) -> Any:
        return min(values.to_pylist())


class MaxAggregation(NumericAggregation):
    """Compute the max of an aggregated column."""

    numeric_only = False

    def _aggregate(self, values: pa.Array) -> Any:
        return max(values.to_pylist())


class CountAggregation(Aggregation):
    """Count the rows of each group, including the missing values.

    When no column is provided it just counts the rows.
    """

    def __init__(self, column: str | None = None) -> None:
        super().__init__(column)

    def compute(self, values: pa.Array, group: tuple = ()) -> Any:
        return len(values)

    def result_type(self, input_type: pa.DataType) -> pa.DataType:
        return pa.int64()


class CountDistinctAggregation(Aggregation):
    """Count the distinct values of each group.

    Missing values count as one more distinct value.
    """

    def compute(self, values: pa.Array, group: tuple = ()) -> Any:
        return len(set(values.to_pylist()))

    def result_type(self, input_type: pa.DataType) -> pa.DataType:
        return pa.int64()


class FirstAggregation(Aggregation):
    """Take the first value of each group.

    With ``skip_missing=True`` the first value that is not missing.
    """

    def compute(self, values: pa.Array, group: tuple = ()) -> Any:
        if self.skip_missing:
            values = values.drop_null()
        if len(values) == 0:
            return self._empty(group)
        return values[0].as_py()


class LastAggregation(Aggregation):
    """Take the last value of each group.

    With ``skip_missing=True`` the last value that is not missing.
    """

    def compute(self, values: pa.Array, group: tuple = ()) -> Any:
        if self.skip_missing:
            values = values.drop_null()
        if len(values) == 0:
            return self._empty(group)
        return values[len(values) - 1].as_py()
