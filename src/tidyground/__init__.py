"""TidyGround

A tabular data engine built from scratch for learning and teaching purposes.

TidyGround implements the verbs taught by data wrangling tutorials,
reshaping (gather, spread, separate, unite), grouping and summarizing
and the six kinds of relational joins, without relying on a dataframe
library. Only Apache Arrow is used, as the in-memory format of the data.

The engine is constituted by multiple components, each isolated within its own
package and each self documented in literate programming style.

The primary components are:

* The Compute Engine, in charge of executing the verbs on the data.
* The Relation API, which provides an high level API for the compute engine.

For the user guide and code documentation of each component, refer to the
component itself.
"""

from . import compute
from .errors import (
    DuplicateKey,
    EmptyReduction,
    EmptySelection,
    InvalidColumn,
    KindMismatch,
    NameCollision,
    RelationError,
    SchemaMismatch,
    SplitArityMismatch,
)
from .kinds import Kind
from .relation import GroupedRelation, Relation

__all__ = (
    "compute",
    "Relation",
    "GroupedRelation",
    "Kind",
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
