"""Errors raised by the engine.

Every error knows which verb (the ``stage``) failed and, when
it makes sense, which column and value caused the failure.
This way when a pipeline of many verbs fails, the message
points straight at the step that has to be corrected::

    >>> raise DuplicateKey("more than one value for key", stage="spread", column="year", value=2016)
    Traceback (most recent call last):
      ...
    tidyground.errors.DuplicateKey: spread: more than one value for key (column='year', value=2016)
"""

from typing import Any

__all__ = (
    "RelationError",
    "InvalidColumn",
    "SchemaMismatch",
    "EmptySelection",
    "NameCollision",
    "DuplicateKey",
    "SplitArityMismatch",
    "EmptyReduction",
    "KindMismatch",
)

_UNSET = object()


class RelationError(Exception):
    """Base class for all the errors raised while transforming a Relation."""

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        column: str | None = None,
        value: Any = _UNSET,
    ) -> None:
        """
        :param message: What went wrong.
        :param stage: The verb that was being executed, like ``"gather"``.
        :param column: The offending column, if any.
        :param value: The offending value, if any.
        """
        self.message = message
        self.stage = stage
        self.column = column
        self.value = None if value is _UNSET else value
        self._has_value = value is not _UNSET
        super().__init__(str(self))

    def __str__(self) -> str:
        text = self.message
        if self.stage:
            text = f"{self.stage}: {text}"
        details = []
        if self.column is not None:
            details.append(f"column={self.column!r}")
        if self._has_value:
            details.append(f"value={self.value!r}")
        if details:
            text += f" ({', '.join(details)})"
        return text


class InvalidColumn(RelationError):
    """A referenced column does not exist."""


class SchemaMismatch(RelationError):
    """Rows or values do not conform to the declared columns."""


class EmptySelection(RelationError):
    """A column selection resolved to no columns at all."""


class NameCollision(RelationError):
    """A generated column name clashes with a column that is retained."""


class DuplicateKey(RelationError):
    """More than one value was found for the same group and key."""


class SplitArityMismatch(RelationError):
    """Splitting a value produced the wrong number of pieces."""


class EmptyReduction(RelationError):
    """An aggregation had no eligible values to reduce.

    By default this is reported as a missing value in the result,
    it is only raised by aggregations created with ``strict=True``.
    """


class KindMismatch(RelationError):
    """A column holds values of a kind the operation can't handle."""
