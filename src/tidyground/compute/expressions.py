"""Expressions executed by compute engine nodes.

Filters need a ``predicate``, so an expression that
returns ``true`` or ``false`` for each row that has to be
kept, like ``sleep_total > 16``.

Mutations need an expression that computes the values
of the new column, like ``sleep_rem / sleep_total``.

Both are expressed by calling :mod:`pyarrow.compute`
functions on columns and literal values.
"""

import pyarrow as pa

from .base import Expression


def apply_expression_if_needed(batch: pa.RecordBatch, o: Expression | pa.Array) -> pa.Array:
    """Invoke Apply on expressions when needed

    If the provided object is an Expression,
    it will be applied to the target batch.

    Otherwise it is used as is, as a literal value
    or data that was already computed.
    """
    if isinstance(o, Expression):
        o = o.apply(batch)
    return o


class FunctionCallExpression(Expression):
    """Call a compute function on its arguments.

    Given a compute function, and a set of arguments
    (other expressions, literals or data), execute
    the function on the provided arguments and return
    the resulting data.

    >>> import pyarrow.compute as pc
    >>> from tidyground.compute import col
    >>> data = pa.record_batch({"sleep_total": [12.1, 17.0, 14.4]})
    >>> expr = FunctionCallExpression(pc.greater, col("sleep_total"), 16)
    >>> str(expr)
    'greater(ColumnRef(sleep_total),16)'
    >>> expr.apply(data).to_pylist()
    [False, True, False]
    """

    def __init__(self, func: callable, *args: Expression) -> None:
        """
        :param func: The function accepting the arguments.
        :param *args: The arguments for the function.
        """
        self.func = func
        self.args = args

    def __str__(self) -> str:
        func_name = getattr(self.func, "__name__", repr(self.func))
        return f"{func_name}({','.join(map(str, self.args))})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Invoke the function resolving all arguments on the recordbatch."""
        args = tuple(apply_expression_if_needed(batch, arg) for arg in self.args)
        return self.func(*args)
