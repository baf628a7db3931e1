"""Query plan nodes that implement selection and computation of columns.

A common request when exploring data is to look only at
some of the columns, or to compute new columns out of the
existing ones, like the fraction of sleep spent in REM phase.

This module implements the :class:`SelectNode`, that keeps
only the columns picked by a selector, and the :class:`MutateNode`,
that adds or replaces columns with the result of expressions.
"""

from typing import Iterable

import pyarrow as pa

from ..errors import EmptySelection
from .base import QueryPlanNode, reporting_stage
from .expressions import Expression
from .selectors import ColumnSelector, resolve_selection


class SelectNode(QueryPlanNode):
    """Keep only the columns picked by a selector, in the order it picks them.

    >>> import pyarrow as pa
    >>> from tidyground.compute import PyArrowTableDataSource, col_range
    >>> data = pa.record_batch({"name": ["Cheetah"], "genus": ["Acinonyx"], "vore": ["carni"], "order": ["Carnivora"]})
    >>> next(SelectNode(["name", col_range("vore", "order")], PyArrowTableDataSource(data)).batches()).to_pydict()
    {'name': ['Cheetah'], 'vore': ['carni'], 'order': ['Carnivora']}
    """

    def __init__(
        self, selector: ColumnSelector | str | Iterable, child: QueryPlanNode
    ) -> None:
        """
        :param selector: The columns to keep.
        :param child: The node emitting the data to be projected.
        """
        self.selector = selector
        self.child = child

    def __str__(self) -> str:
        return f"SelectNode(selector={self.selector}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        for batch in self.child.batches():
            selected = resolve_selection(self.selector, batch.schema.names, "select")
            if not selected:
                raise EmptySelection("no columns selected", stage="select")
            yield batch.select(selected)


class MutateNode(QueryPlanNode):
    """Compute new columns based on expressions.

    New columns are appended at the end, while expressions
    named like an existing column replace it in place.
    Expressions are evaluated in order, so each one can
    refer to the columns computed by the previous ones.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from tidyground.compute import col, FunctionCallExpression, PyArrowTableDataSource
    >>> data = pa.record_batch({"sleep_rem": [1.0, 4.5], "sleep_total": [4.0, 9.0]})
    >>> mutate = MutateNode({"rem_proportion": FunctionCallExpression(pc.divide, col("sleep_rem"), col("sleep_total"))},
    ...                     PyArrowTableDataSource(data))
    >>> next(mutate.batches()).to_pydict()
    {'sleep_rem': [1.0, 4.5], 'sleep_total': [4.0, 9.0], 'rem_proportion': [0.25, 0.5]}
    """

    def __init__(self, project: dict[str, Expression], child: QueryPlanNode) -> None:
        """
        :param project: The dict {name: Expression} of the columns to compute.
        :param child: The node emitting the data to be mutated.
        """
        self.project = project
        self.child = child

    def __str__(self) -> str:
        return f"MutateNode(project={self.project}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Apply the expressions to each recordbatch yielded by the child node."""
        for batch in self.child.batches():
            for name, expr in self.project.items():
                with reporting_stage("mutate"):
                    data = expr.apply(batch)
                if isinstance(data, pa.ChunkedArray):
                    data = data.combine_chunks()
                elif not isinstance(data, pa.Array):
                    # A scalar value, repeat it for all rows.
                    data = pa.array([_as_py(data)] * batch.num_rows)

                if name in batch.schema.names:
                    batch = batch.set_column(batch.schema.get_field_index(name), name, data)
                else:
                    batch = batch.append_column(name, data)
            yield batch


def _as_py(value):
    if isinstance(value, pa.Scalar):
        return value.as_py()
    return value
