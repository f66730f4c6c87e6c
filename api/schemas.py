from typing import Literal, Optional
from pydantic import BaseModel, Field

UnitTypeId = Literal["FOOT", "ARCHER", "CAVALRY", "PLANNER"]


class StartRequest(BaseModel):
    """Battle start request schema."""
    seed: Optional[int] = None  # falls back to the configured seed


class BudgetIn(BaseModel):
    amount: int


class SideIn(BaseModel):
    side: Literal[1, 2]


class RecruitIn(BaseModel):
    """Add or remove one unit of a type for a side."""
    side: Literal[1, 2]
    unit_type_id: UnitTypeId


class TileIn(BaseModel):
    col: int = Field(ge=0)
    row: int = Field(ge=0)


class SelectIn(BaseModel):
    unit_id: int


class EventsResponse(BaseModel):
    """Events response schema."""
    next_offset: int
    events: list[dict]
