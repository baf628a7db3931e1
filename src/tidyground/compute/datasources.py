"""Query Plan nodes that provide data

The datasource nodes are the leafs of every query plan,
they take the data, convert it into the format accepted by
the compute engine and forward it to the next node in the plan.

Loading data from files or URLs is left to the caller,
TidyGround only deals with data already in memory.
"""

from abc import abstractmethod

import pyarrow as pa

from .base import QueryPlanNode


class DataSourceNode(QueryPlanNode):
    """Base class for nodes that provide data from a source."""

    @abstractmethod
    def poll_schema(self) -> pa.Schema:
        """Poll the schema of the data source without loading its content."""
        ...


class PyArrowTableDataSource(DataSourceNode):
    """Provide data from an in-memory pyarrow.Table or pyarrow.RecordBatch.

    Given a :class:`pyarrow.Table` or `pyarrow.RecordBatch` object,
    allow to use its data in a query plan.

    The source always emits at least one batch, even for
    tables with no rows, so that the following nodes
    always know the schema of the data they receive.
    """

    def __init__(self, table: pa.Table | pa.RecordBatch) -> None:
        """
        :param table: The table or recordbatch with the data to read.
        """
        self.table = table
        self.is_recordbatch = isinstance(table, pa.RecordBatch)

    def __str__(self) -> str:
        return f"PyArrowTableDataSource(columns={self.table.column_names}, rows={self.table.num_rows})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Emit the data contained in the Table for consumption by other node."""
        if self.is_recordbatch:
            yield self.table
            return

        batches = self.table.to_batches()
        if not batches:
            schema = self.table.schema
            batches = [
                pa.record_batch(
                    [pa.array([], type=field.type) for field in schema], schema=schema
                )
            ]
        yield from batches

    def poll_schema(self) -> pa.Schema:
        """Poll the schema of the Table."""
        return self.table.schema
