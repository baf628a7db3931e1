"""The TidyGround Compute Engine

The compute engine defines the in-memory
format for query plans and the plan nodes
supported.

The compute engine is tightly bound to Apache Arrow,
thus the engine will expect to always deal with
:class:`pyarrow.RecordBatch` and emit a new RecordBatch
as the result of the node execution.

This allows to easily build compute pipelines like::

    (RecordBatch)-->Node1--(RecordBatch)-->Node2--(RecordBatch)-->...

The query plan nodes themselves are in charge of their execution,
this keeps the behavior near to the node and thus makes easy to
know how a Node is actually executed without having to look around too much.

Building a query plan requires to combine the nodes that we want
to be executed starting with one or more ``DataSource`` nodes as the
leafs node of a query:

>>> import pyarrow as pa
>>> from tidyground.compute import GatherNode, AggregateNode, MeanAggregation
>>> from tidyground.compute import PyArrowTableDataSource, col_range
>>> stocks = pa.record_batch({
...    "time": ["2009-01-01", "2009-01-02"],
...    "X": [1.0, 3.0],
...    "Y": [2.0, 6.0],
... })
>>> # Average price of each stock
>>> query = AggregateNode(
...     ["stock"],
...     {"avg_price": MeanAggregation("price")},
...     child=GatherNode("stock", "price", col_range("X", "Y"), PyArrowTableDataSource(stocks))
... )
>>> for data in query.batches():
...     print(data.to_pydict())
{'stock': ['X', 'Y'], 'avg_price': [2.0, 4.0]}
"""

from .aggregate import (
    AggregateNode,
    Aggregation,
    CountAggregation,
    CountDistinctAggregation,
    FirstAggregation,
    LastAggregation,
    MaxAggregation,
    MeanAggregation,
    MinAggregation,
    StdDevAggregation,
    SumAggregation,
    partition,
)
from .base import ColumnRef, QueryPlanNode, col, materialize
from .datasources import PyArrowTableDataSource
from .expressions import FunctionCallExpression
from .filtering import FilterNode
from .join import JoinNode, JoinType
from .reshape import GatherNode, SeparateNode, SpreadNode, UniteNode
from .selection import MutateNode, SelectNode
from .selectors import (
    ColumnSelector,
    ComplementSelector,
    NameSelector,
    PredicateSelector,
    RangeSelector,
    UnionSelector,
    col_range,
    cols,
    contains,
    ends_with,
    everything,
    matches,
    one_of,
    starts_with,
)
from .sorting import ArrangeNode

__all__ = (
    "QueryPlanNode",
    "PyArrowTableDataSource",
    "materialize",
    "FilterNode",
    "FunctionCallExpression",
    "col",
    "ColumnRef",
    "SelectNode",
    "MutateNode",
    "ArrangeNode",
    "GatherNode",
    "SpreadNode",
    "SeparateNode",
    "UniteNode",
    "partition",
    "AggregateNode",
    "Aggregation",
    "CountAggregation",
    "CountDistinctAggregation",
    "FirstAggregation",
    "LastAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "MinAggregation",
    "StdDevAggregation",
    "SumAggregation",
    "JoinNode",
    "JoinType",
    "ColumnSelector",
    "NameSelector",
    "RangeSelector",
    "PredicateSelector",
    "ComplementSelector",
    "UnionSelector",
    "cols",
    "col_range",
    "starts_with",
    "ends_with",
    "contains",
    "matches",
    "one_of",
    "everything",
)
