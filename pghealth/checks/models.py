from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field


class DbObjectFinding(BaseModel):
    """Generic finding about one database object (table, index, constraint, ...).

    Two findings describe the same object when their ``identity_key`` is
    equal, whichever member produced them.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    object_type: str = Field(min_length=1, description="Kind of object, e.g. 'index'")
    object_name: str = Field(min_length=1, description="Schema-qualified object name")
    table_name: str | None = Field(default=None, description="Owning table, if any")
    attributes: dict[str, Any] = Field(default_factory=dict, description="Diagnostic-specific values")

    @property
    def identity_key(self) -> tuple[str, str]:
        return (self.object_type, self.object_name)

    @classmethod
    def from_row(cls, row: Mapping[str, Any], object_type: str) -> Self:
        """Build a finding from a result row with an ``object_name`` column.

        ``table_name`` is taken from the row when present; every other column
        goes into ``attributes``.
        """
        values = dict(row)
        return cls(
            object_type=object_type,
            object_name=str(values.pop("object_name")),
            table_name=values.pop("table_name", None),
            attributes=values,
        )
