"""Query plan nodes that perform sorting of data.

When looking for the most significant values,
like the mammals that sleep the most, it's often
necessary to sort the data based on one or more columns.

This module implements the sorting capabilities.
"""

import logging

import pyarrow as pa

from .base import QueryPlanNode, check_columns, materialize

logger = logging.getLogger(__name__)


class ArrangeNode(QueryPlanNode):
    """Sort data in-memory based on one or more columns.

    The node expects a list of columns and a list of
    sort directions. The data will be sorted based on
    the columns in the order they are provided.

    The sort is stable, rows with equal keys preserve
    the order they had, and missing values go last.

    >>> import pyarrow as pa
    >>> from tidyground.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"order": ["b", "a", "b"], "sleep_total": [1, 2, 3]})
    >>> # Sort the data by order, and by sleep_total in descending order
    >>> sort = ArrangeNode(["order", "sleep_total"], [False, True], PyArrowTableDataSource(data))
    >>> next(sort.batches()).to_pydict()
    {'order': ['a', 'b', 'b'], 'sleep_total': [2, 3, 1]}
    """

    def __init__(
        self, keys: list[str], descending: list[bool], child: QueryPlanNode
    ) -> None:
        """
        :param keys: The columns to sort by in the order they should be sorted.
        :param descending: If each columns should be sorted in a descending order.
        :param child: The node emitting the data to be sorted.
        """
        if len(keys) != len(descending):
            raise ValueError("Keys and descending must have the same length")

        self.keys = list(keys)
        self.sorting = list(
            zip(keys, ("descending" if desc else "ascending" for desc in descending))
        )
        self.child = child

    def __str__(self) -> str:
        return f"ArrangeNode(sorting={self.sorting}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Sort all the data of the child node.

        Batches provided by child node are accumulated
        until they are all loaded in memory, then they
        are sorted as a single batch.
        """
        batch = materialize(self.child)
        check_columns(batch, self.keys, "arrange")
        if not self.sorting:
            yield batch
            return

        logger.debug("arrange %d rows by %s", batch.num_rows, self.sorting)
        yield batch.sort_by(self.sorting)
