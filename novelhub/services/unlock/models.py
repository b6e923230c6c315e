"""
DTO of the auto-unlock engine: what was unlocked, where the walk stopped, which
rent modules became published. Plain values only, safe to use after commit.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class UnlockedItem(BaseModel):
    """One module or chapter flipped from paid to published."""

    kind: Literal["module", "chapter"]
    id: str
    novel_id: str
    module_id: str
    title: str
    order: int
    price: int
    budget_after: int = Field(..., description="Remaining budget right after this unlock")

    model_config = {"frozen": True}


class HaltPoint(BaseModel):
    """First item the remaining budget could not pay for."""

    kind: Literal["module", "chapter"]
    id: str
    module_id: str
    price: int
    remaining_budget: int

    model_config = {"frozen": True}


class SwitchedModule(BaseModel):
    """Rent module switched to published because nothing inside is left to pay for."""

    id: str
    novel_id: str
    title: str

    model_config = {"frozen": True}


class UnlockResult(BaseModel):
    novel_id: str
    initial_budget: int
    final_budget: int
    unlocked_content: list[UnlockedItem] = Field(default_factory=list)
    switched_modules: list[SwitchedModule] = Field(default_factory=list)
    halted_on: HaltPoint | None = None

    model_config = {"frozen": True}

    @property
    def spent(self) -> int:
        return sum(item.price for item in self.unlocked_content)

    @property
    def unlocked_modules(self) -> list[UnlockedItem]:
        return [item for item in self.unlocked_content if item.kind == "module"]

    @property
    def unlocked_chapters(self) -> list[UnlockedItem]:
        return [item for item in self.unlocked_content if item.kind == "chapter"]
