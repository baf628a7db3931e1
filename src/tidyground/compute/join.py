"""Query plan nodes that implement join operations.

Joins combine the rows of two tables (``x`` the left one and ``y`` the right one)
based on the values of one or more key columns. Six flavours of join are
supported, they differ in what happens to the rows that don't find a match:

* ``inner``: only the rows matching in both tables are kept.
* ``left``: all the rows of ``x`` are kept, the ones without a match get missing values for ``y`` columns.
* ``right``: all the rows of ``y`` are kept, the ones without a match get missing values for ``x`` columns.
* ``full``: all the rows of both tables are kept.
* ``semi``: the rows of ``x`` that have a match in ``y``, without adding any column of ``y``.
* ``anti``: the rows of ``x`` that have no match in ``y``.

Given the nominations and the winners of an award::

    x:                              y:
    +-------+-----------+           +-----------+------+
    | movie | actor     |           | movie     | won  |
    +-------+-----------+           +-----------+------+
    | Room  | Larson    |           | Room      | True |
    | Room  | Tremblay  |           | Spotlight | True |
    | Carol | Blanchett |           +-----------+------+
    +-------+-----------+

An inner join on ``movie`` would provide the two rows of ``Room``,
while an anti join would provide only the ``Carol`` row.

>>> import pyarrow as pa
>>> from tidyground.compute import JoinNode, PyArrowTableDataSource
>>> x = PyArrowTableDataSource(pa.record_batch({"id": [1, 2, 3], "name": ["Alice", "Bob", "Charlie"]}))
>>> y = PyArrowTableDataSource(pa.record_batch({"id": [3, 2], "age": [25, 30]}))
>>> next(JoinNode(["id"], ["id"], x, y).batches()).to_pydict()
{'id': [2, 3], 'name': ['Bob', 'Charlie'], 'age': [30, 25]}
"""

import enum
import logging

import pyarrow as pa

from ..errors import NameCollision
from ..kinds import cast_values, common_type
from .base import QueryPlanNode, check_columns, materialize

__all__ = ("JoinType", "JoinNode")

logger = logging.getLogger(__name__)


class JoinType(str, enum.Enum):
    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"
    FULL = "full"
    SEMI = "semi"
    ANTI = "anti"


class JoinNode(QueryPlanNode):
    """Join two data sources with a hash join.

    The rows of the right table are indexed by their key values,
    then the rows of the left table are looked up in the index
    one by one, in the order they come. This is what makes so that
    the joined rows preserve the order of the left table, followed
    by the rows that only exist in the right table.

    Supposing we have two tables::

        left:                  right:
        +----+--------+        +----+-----+
        | id | name   |        | id | age |
        +----+--------+        +----+-----+
        | 1  | Alice  |        | 3  | 25  |
        | 2  | Bob    |        | 2  | 30  |
        | 3  | Charlie|        | 4  | 40  |
        +----+--------+        +----+-----+

    We would perform the following steps:

    1. Index the right table by its key values, remembering
       at which rows each key value appears. Rows where a key
       is missing are never indexed as missing values never match::

        {(3,): [0], (2,): [1], (4,): [2]}

    2. For each row of the left table, lookup its key in the index
       and record the pairs of matching rows. A row of the left table
       with no match is paired to nothing (``None``)::

        [(0, None), (1, 1), (2, 0)]

    3. Depending on the join type, drop the unmatched left rows (inner),
       keep them (left, full) and add the right rows that were never
       matched (right, full)::

        full: [(0, None), (1, 1), (2, 0), (None, 2)]

    4. Take the rows of each table according to the pairs, the ``None``
       indices produce missing values::

        +----+--------+-----+
        | id | name   | age |
        +----+--------+-----+
        | 1  | Alice  |     |
        | 2  | Bob    | 30  |
        | 3  | Charlie| 25  |
        | 4  |        | 40  |
        +----+--------+-----+

    Key columns appear only once, taking the value from the right table
    for the rows that only exist there. In right and full joins the key
    column gets a type able to hold the keys of both tables. Other columns of the right table
    that have the same name of a column of the left table get a suffix.
    """

    def __init__(
        self,
        left_keys: list[str],
        right_keys: list[str],
        left_child: QueryPlanNode,
        right_child: QueryPlanNode,
        how: JoinType | str = JoinType.INNER,
        suffix: str = "_right",
    ) -> None:
        """
        :param left_keys: The keys to join on in the left table.
        :param right_keys: The keys to join on in the right table, matched by position with ``left_keys``.
        :param left_child: The left source of data to join.
        :param right_child: The right source of data to join.
        :param how: The type of join, one of :class:`JoinType`.
        :param suffix: Appended to the right columns whose name is already taken.
        """
        if len(left_keys) != len(right_keys):
            raise ValueError("Left and right keys must have the same length")
        if not left_keys:
            raise ValueError("At least one join key is required")

        self.left_keys = list(left_keys)
        self.right_keys = list(right_keys)
        self.left_child = left_child
        self.right_child = right_child
        self.how = JoinType(how)
        self.suffix = suffix

    @property
    def stage(self) -> str:
        return f"{self.how.value}_join"

    def __str__(self) -> str:
        return (
            f"JoinNode(how={self.how.value}, left_keys={self.left_keys}, right_keys={self.right_keys}, "
            f"left={self.left_child}, right={self.right_child})"
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Perform the join operation.

        Accumulates all rows of both children to
        perform the join operation, so it is not suitable
        for large datasets.
        """
        left_rb = materialize(self.left_child)
        right_rb = materialize(self.right_child)
        check_columns(left_rb, self.left_keys, self.stage)
        check_columns(right_rb, self.right_keys, self.stage)

        index = self._build_index(right_rb)
        left_key_values = list(zip(*(left_rb.column(k).to_pylist() for k in self.left_keys)))

        pairs: list[tuple[int | None, int | None]] = []
        matched_right: set[int] = set()
        for left_row, keyval in enumerate(left_key_values):
            matches = index.get(keyval, []) if None not in keyval else []
            if self.how == JoinType.SEMI:
                if matches:
                    pairs.append((left_row, None))
                continue
            if self.how == JoinType.ANTI:
                if not matches:
                    pairs.append((left_row, None))
                continue

            for right_row in matches:
                pairs.append((left_row, right_row))
                matched_right.add(right_row)
            if not matches and self.how in (JoinType.LEFT, JoinType.FULL):
                pairs.append((left_row, None))

        if self.how in (JoinType.RIGHT, JoinType.FULL):
            pairs.extend(
                (None, right_row)
                for right_row in range(right_rb.num_rows)
                if right_row not in matched_right
            )

        logger.debug(
            "%s: %d x %d rows -> %d rows", self.stage, left_rb.num_rows, right_rb.num_rows, len(pairs)
        )
        if self.how in (JoinType.SEMI, JoinType.ANTI):
            left_rows = pa.array([left for left, _ in pairs], type=pa.int64())
            yield left_rb.take(left_rows)
        else:
            yield self._combine(left_rb, right_rb, pairs)

    def _build_index(self, right_rb: pa.RecordBatch) -> dict[tuple, list[int]]:
        """Map each key value of the right table to the rows it appears at."""
        index: dict[tuple, list[int]] = {}
        right_key_values = zip(*(right_rb.column(k).to_pylist() for k in self.right_keys))
        for right_row, keyval in enumerate(right_key_values):
            if None in keyval:
                continue
            index.setdefault(keyval, []).append(right_row)
        return index

    def _combine(
        self,
        left_rb: pa.RecordBatch,
        right_rb: pa.RecordBatch,
        pairs: list[tuple[int | None, int | None]],
    ) -> pa.RecordBatch:
        """Build the joined batch out of the matched pairs of rows."""
        left_rows = pa.array([left for left, _ in pairs], type=pa.int64())
        right_rows = pa.array([right for _, right in pairs], type=pa.int64())

        combined_data: dict[str, pa.Array] = {}
        right_key_for = dict(zip(self.left_keys, self.right_keys))
        for name in left_rb.schema.names:
            if name in right_key_for and self.how in (JoinType.RIGHT, JoinType.FULL):
                # Rows that only exist on the right side have
                # their key values provided by the right table.
                left_key = left_rb.column(name)
                right_key = right_rb.column(right_key_for[name])
                key_type = common_type([left_key.type, right_key.type])
                left_values = cast_values(left_key, key_type).to_pylist()
                right_values = cast_values(right_key, key_type).to_pylist()
                combined_data[name] = pa.array(
                    [
                        left_values[left] if left is not None else right_values[right]
                        for left, right in pairs
                    ],
                    type=key_type,
                )
            else:
                combined_data[name] = left_rb.column(name).take(left_rows)

        for name in right_rb.schema.names:
            if name in self.right_keys:
                # Skip the right keys as they have the same values of the left keys
                # and we don't want to duplicate them in the resulting recordbatch
                continue
            new_col_name = name
            if new_col_name in combined_data:
                new_col_name = name + self.suffix
                if new_col_name in combined_data or new_col_name in right_rb.schema.names:
                    raise NameCollision("joined column name already exists", stage=self.stage, column=new_col_name)
            combined_data[new_col_name] = right_rb.column(name).take(right_rows)

        return pa.record_batch(combined_data)
