"""Query plan nodes that implement filtering of rows.

A common request when exploring data is to pick only
the rows that respect a condition, like the mammals
that sleep more than 16 hours a day.

This module implements the basic filtering capabilities.
"""

import logging

from .base import QueryPlanNode, reporting_stage
from .expressions import Expression

logger = logging.getLogger(__name__)


class FilterNode(QueryPlanNode):
    """Filter data based on a predicate expression.

    The filter expects an expression that when applied
    to the batch of data being filtered returns ``true``
    or ``false`` for each row in the data to mark which
    rows have to be preserved and which rows have to be discarded.
    Rows for which the predicate is missing are discarded too.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from tidyground.compute import col, FunctionCallExpression, PyArrowTableDataSource
    >>> data = pa.record_batch({"sleep_total": [12.1, 17.0, None, 19.7]})
    >>> predicate = FunctionCallExpression(pc.greater, col("sleep_total"), 16)
    >>> next(FilterNode(predicate, PyArrowTableDataSource(data)).batches()).to_pydict()
    {'sleep_total': [17.0, 19.7]}
    """

    def __init__(self, expression: Expression, child: QueryPlanNode) -> None:
        """
        :param expression: The predicate expression to filter with.
        :param child: The node emitting the data to be filtered.
        """
        self.expression = expression
        self.child = child

    def __str__(self) -> str:
        return f"FilterNode(filter={self.expression}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Apply the filtering to the child node.

        For each recordbatch yielded by the child node,
        apply the expression and get back a mask
        (an array of only true/false values).

        Based on the mask filter the rows of the batch
        and return only those matching the filter.
        """
        for batch in self.child.batches():
            with reporting_stage("filter"):
                mask = self.expression.apply(batch)
            filtered = batch.filter(mask, null_selection_behavior="drop")
            logger.debug("filter %s: %d rows -> %d rows", self.expression, batch.num_rows, filtered.num_rows)
            yield filtered
