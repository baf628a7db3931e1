"""Base classes and interfaces for the Compute Engine

This module defines the base components that are
necessary to represent a query plan and execute it.
"""

import abc
import contextlib
from typing import Iterator

import pyarrow as pa

from ..errors import InvalidColumn, RelationError


class QueryPlanNode(abc.ABC):
    """A node of a query execution plan.

    The Query plan is represented as a tree
    of nodes. Each node is a step in the execution
    and all previous steps are children of the
    last one.

    For example reshaping data and then summarizing it
    is a plan like::

        DataSourceNode -> GatherNode -> AggregateNode

    Where the last step is the aggregation and the
    data source node is the leaf of the tree.

    The number of children can be variable, some
    nodes like joins accept two child nodes that
    have to be combined together.

    Each Node accepts :class:`pyarrow.RecordBatch`
    data as its input and emits a new
    :class:`pyarrow.RecordBatch` as its output.

    The verbs implemented by TidyGround all need to see
    the whole data to work (a spread must know every key,
    a join must know every row of the other side), so
    nodes accumulate the batches of their children
    through :func:`materialize` and emit a single batch.
    """

    RecordBatchesGenerator = Iterator[pa.RecordBatch]

    @abc.abstractmethod
    def batches(self) -> RecordBatchesGenerator:
        """Emits the batches for the next node.

        Each QueryPlan node is expected to be able to
        generate data that has to be provided to the next
        node in the plan.

        Usually this happens by consuming data from its
        child nodes, transforming it somehow, and yielding
        it back to the next consumer.
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the node."""
        ...


class Expression(abc.ABC):
    """Expression to apply to a RecordBatch.

    Expressions are some form of operation that
    has to be applied to the data of a :class:`pyarrow.RecordBatch`
    to create new data, for example ``sleep_total > 16``.

    As our engine is Column Major, applying an expression
    always results in a new column, thus in a
    :class:`pyarrow.Array` that contains the data
    for that column.
    """

    @abc.abstractmethod
    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Apply the expression to a RecordBatch."""
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the expression."""
        ...

    def __repr__(self) -> str:
        return str(self)


class ColumnRef(Expression):
    """References a column in a record batch.

    When applied to a record batch returns the data for
    the referenced column.
    """

    def __init__(self, name: str) -> None:
        """
        :param name: The name of the column being referenced.
        """
        self.name = name

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Get the data for the column."""
        if self.name not in batch.schema.names:
            raise InvalidColumn("referenced column does not exist", column=self.name)
        return batch.column(self.name)

    def __str__(self) -> str:
        return f"ColumnRef({self.name})"


col = ColumnRef


def materialize(node: QueryPlanNode) -> pa.RecordBatch:
    """Consume all the batches of a node and combine them in a single one.

    >>> from tidyground.compute import PyArrowTableDataSource
    >>> table = pa.Table.from_batches([
    ...     pa.record_batch({"a": [1, 2]}),
    ...     pa.record_batch({"a": [3]}),
    ... ])
    >>> materialize(PyArrowTableDataSource(table)).to_pydict()
    {'a': [1, 2, 3]}
    """
    batches = list(node.batches())
    if len(batches) == 1:
        return batches[0]

    table = pa.Table.from_batches(batches)
    return pa.record_batch(
        [column.combine_chunks() for column in table.columns], schema=table.schema
    )


def check_columns(batch: pa.RecordBatch, names: list[str], stage: str) -> None:
    """Raise :class:`InvalidColumn` if any of the names is not in the batch."""
    available = batch.schema.names
    for name in names:
        if name not in available:
            raise InvalidColumn("column does not exist", stage=stage, column=name)


@contextlib.contextmanager
def reporting_stage(stage: str) -> Iterator[None]:
    """Attribute the errors raised within the block to a verb.

    Selectors and expressions don't know which verb is using them,
    so errors they raise are tagged with the verb's stage here.
    """
    try:
        yield
    except RelationError as err:
        if err.stage is None:
            err.stage = stage
        raise
