"""Derived relationships between entity tables."""
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from apiforge.models.schema import ForeignKeyAction


class RelationKind(str, Enum):
    """Kinds of derived relationships."""

    MANY_TO_ONE = "MANY_TO_ONE"
    ONE_TO_MANY = "ONE_TO_MANY"
    ONE_TO_ONE = "ONE_TO_ONE"
    MANY_TO_MANY = "MANY_TO_MANY"


class Relationship(BaseModel):
    """A directed edge owned by ``owning_table``.

    Only owned edges are stored on the Schema; ``inverse()`` produces the
    view from the other side on demand. For MANY_TO_MANY, ``columns`` and
    ``target_columns`` are the junction table's columns pointing at the
    owning and the target table respectively.
    """

    model_config = ConfigDict(frozen=True)

    kind: RelationKind
    owning_table: str
    target_table: str
    columns: Tuple[str, ...]
    target_columns: Tuple[str, ...] = ()
    junction_table: Optional[str] = None
    on_delete: ForeignKeyAction = ForeignKeyAction.NO_ACTION
    owner: bool = True

    @property
    def is_self_reference(self) -> bool:
        return self.owning_table.lower() == self.target_table.lower()

    def inverse(self) -> "Relationship":
        """Return the non-owning view of this relationship."""
        if self.kind == RelationKind.MANY_TO_ONE:
            kind = RelationKind.ONE_TO_MANY
        elif self.kind == RelationKind.ONE_TO_MANY:
            kind = RelationKind.MANY_TO_ONE
        else:
            kind = self.kind

        if self.kind == RelationKind.MANY_TO_MANY:
            columns, target_columns = self.target_columns, self.columns
        else:
            columns, target_columns = self.columns, self.target_columns

        return Relationship(
            kind=kind,
            owning_table=self.target_table,
            target_table=self.owning_table,
            columns=columns,
            target_columns=target_columns,
            junction_table=self.junction_table,
            on_delete=self.on_delete,
            owner=not self.owner,
        )
