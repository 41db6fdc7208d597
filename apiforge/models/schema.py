"""Structural schema model produced by the DDL extractor."""
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict


class ForeignKeyAction(str, Enum):
    """Referential actions for ON DELETE / ON UPDATE."""

    CASCADE = "CASCADE"
    SET_NULL = "SET_NULL"
    SET_DEFAULT = "SET_DEFAULT"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO_ACTION"

    @classmethod
    def parse(cls, text: Optional[str]) -> "ForeignKeyAction":
        """Parse an action as written in DDL (``SET NULL``, ``no action``...)."""
        if not text:
            return cls.NO_ACTION
        key = "_".join(text.upper().split())
        try:
            return cls(key)
        except ValueError:
            return cls.NO_ACTION


class ColumnSchema(BaseModel):
    """Represents a database column definition."""

    model_config = ConfigDict(frozen=True)

    name: str
    data_type: str
    is_nullable: bool = True
    is_primary_key: bool = False
    is_unique: bool = False
    default: Optional[str] = None
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    auto_increment: bool = False
    ordinal_position: int = 1


class ForeignKey(BaseModel):
    """A declared foreign key, inline or table-level."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    columns: Tuple[str, ...]
    referenced_table: str
    referenced_columns: Tuple[str, ...] = ()
    on_delete: ForeignKeyAction = ForeignKeyAction.NO_ACTION
    on_update: ForeignKeyAction = ForeignKeyAction.NO_ACTION
    # False until the second extraction pass finds the referenced table
    resolved: bool = False


class IndexSchema(BaseModel):
    """A declared index."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    columns: Tuple[str, ...]
    unique: bool = False


class SequenceSchema(BaseModel):
    """A CREATE SEQUENCE declaration."""

    model_config = ConfigDict(frozen=True)

    name: str
    start: int = 1
    increment: int = 1


class TableSchema(BaseModel):
    """Represents a database table definition.

    Column order is declaration order. Whether the table is an entity or a
    junction table is derived by the inference engine and never stored here.
    """

    model_config = ConfigDict(frozen=True)

    table_name: str
    schema_name: Optional[str] = None
    columns: Tuple[ColumnSchema, ...] = ()
    primary_key: Tuple[str, ...] = ()
    foreign_keys: Tuple[ForeignKey, ...] = ()
    unique_constraints: Tuple[Tuple[str, ...], ...] = ()
    indexes: Tuple[IndexSchema, ...] = ()

    def column(self, name: str) -> Optional[ColumnSchema]:
        """Case-insensitive column lookup."""
        lowered = name.lower()
        for col in self.columns:
            if col.name.lower() == lowered:
                return col
        return None

    @property
    def key(self) -> str:
        """Lookup key used to compare table names."""
        return self.table_name.lower()

    def resolved_foreign_keys(self) -> Tuple[ForeignKey, ...]:
        return tuple(fk for fk in self.foreign_keys if fk.resolved)

    def foreign_key_columns(self) -> set:
        """Lower-cased names of every column taking part in a resolved FK."""
        return {c.lower() for fk in self.resolved_foreign_keys() for c in fk.columns}

    def unique_column_sets(self) -> list:
        """Every column set guaranteed unique: PK, UNIQUE constraints, unique indexes."""
        sets = []
        if self.primary_key:
            sets.append(frozenset(c.lower() for c in self.primary_key))
        for col in self.columns:
            if col.is_unique:
                sets.append(frozenset([col.name.lower()]))
        for constraint in self.unique_constraints:
            sets.append(frozenset(c.lower() for c in constraint))
        for index in self.indexes:
            if index.unique:
                sets.append(frozenset(c.lower() for c in index.columns))
        return sets
