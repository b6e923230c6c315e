from datetime import datetime

from pydantic import BaseModel, Field


class ContributionIn(BaseModel):
    amount: int
    note: str | None = Field(None, max_length=500)


class GiftIn(BaseModel):
    amount: int
    note: str | None = Field(None, max_length=500)


class BudgetUpdateIn(BaseModel):
    novel_budget: int
    note: str | None = Field(None, max_length=500)


class BalanceUpdateIn(BaseModel):
    novel_balance: int


class LedgerEntryOut(BaseModel):
    id: str
    user_id: str | None
    amount: int
    note: str
    budget_after: int
    balance_after: int | None = None
    kind: str
    created_at: datetime

    model_config = {"from_attributes": True}


class NovelTransactionOut(BaseModel):
    id: str
    amount: int
    type: str
    description: str
    balance_after: int
    source_id: str | None = None
    source_model: str | None = None
    performed_by: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TopUpIn(BaseModel):
    amount: int
