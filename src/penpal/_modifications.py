"""Edit-log entries replayed by the Edit operator."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from ._canvas import DEFAULT_LINE_COLOR


class ModificationType(StrEnum):
    MOVE_POINT = "MOVE_POINT"
    ADD_POINT = "ADD_POINT"
    DELETE_POINT = "DELETE_POINT"
    CREATE_LINE = "CREATE_LINE"
    DELETE_LINE = "DELETE_LINE"
    ADD_POINT_TO_LINE = "ADD_POINT_TO_LINE"
    REMOVE_POINT_FROM_LINE = "REMOVE_POINT_FROM_LINE"


class XY(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class _Modification(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class MovePoint(_Modification):
    type: Literal["MOVE_POINT"] = "MOVE_POINT"
    point_index: int
    new_pos: XY
    old_pos: XY | None = None


class AddPoint(_Modification):
    type: Literal["ADD_POINT"] = "ADD_POINT"
    position: XY


class DeletePoint(_Modification):
    type: Literal["DELETE_POINT"] = "DELETE_POINT"
    point_index: int


class CreateLine(_Modification):
    type: Literal["CREATE_LINE"] = "CREATE_LINE"
    points: list[int]
    color: str = DEFAULT_LINE_COLOR
    thickness: float = 2.0


class DeleteLine(_Modification):
    type: Literal["DELETE_LINE"] = "DELETE_LINE"
    line_index: int


class AddPointToLine(_Modification):
    """Insert an existing point into a line at `position` (appended when None)."""

    type: Literal["ADD_POINT_TO_LINE"] = "ADD_POINT_TO_LINE"
    line_index: int
    point_index: int
    position: int | None = None


class RemovePointFromLine(_Modification):
    type: Literal["REMOVE_POINT_FROM_LINE"] = "REMOVE_POINT_FROM_LINE"
    line_index: int
    point_index: int


Modification = Annotated[
    MovePoint | AddPoint | DeletePoint | CreateLine | DeleteLine | AddPointToLine | RemovePointFromLine,
    Field(discriminator="type"),
]

modification_list_adapter: TypeAdapter[list[Modification]] = TypeAdapter(list[Modification])


def parse_modifications(raw: object) -> list[Modification]:
    """Validate a raw (JSON-shaped) edit log.

    Already-parsed entries pass through unchanged.

    Raises:
        pydantic.ValidationError: If an entry is malformed or of unknown type.

    """
    if raw is None:
        return []
    return modification_list_adapter.validate_python(raw)
