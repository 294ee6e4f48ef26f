"""
Domain records for the Diga assistant.

Every model serialises with camelCase aliases (``targetAmount``, ``isDraft``)
and accepts either the alias or the Python field name on input.
"""

import datetime as dt
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self):
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class Transaction(CamelModel):
    id: str
    type: TransactionType
    amount: float = Field(..., gt=0)
    category: str
    date: dt.date
    description: str = ""
    is_recurring: bool = False


class SavingsGoal(CamelModel):
    id: str
    name: str
    target_amount: float = Field(..., gt=0)
    current_amount: float = Field(0.0, ge=0)
    image_url: Optional[str] = None
    deadline: Optional[dt.datetime] = None
    monthly_plan_amount: Optional[float] = None

    @property
    def progress(self):
        """Share of the target already saved, clamped to [0, 1] for display."""
        if self.target_amount <= 0:
            return 0.0
        return max(0.0, min(1.0, self.current_amount / self.target_amount))


class BudgetLimit(CamelModel):
    id: str
    category: str
    amount: float = Field(..., gt=0)


class DailyQuote(CamelModel):
    text: str
    date: dt.date


class UserPreferences(CamelModel):
    default_privacy_mode: Optional[bool] = None
    has_seen_walkthrough: Optional[bool] = None


class UserProfile(CamelModel):
    monthly_income: float = Field(0.0, ge=0)
    has_onboarded: bool = False
    savings_goals: List[SavingsGoal] = Field(default_factory=list)
    budget_limits: List[BudgetLimit] = Field(default_factory=list)
    daily_quote: Optional[DailyQuote] = None
    preferences: Optional[UserPreferences] = None

    def find_goal(self, name):
        key = (name or "").strip().lower()
        for goal in self.savings_goals:
            if goal.name.strip().lower() == key:
                return goal
        return None

    def find_limit(self, category):
        key = (category or "").strip().lower()
        for limit in self.budget_limits:
            if limit.category.strip().lower() == key:
                return limit
        return None


class DraftTransaction(CamelModel):
    """A transaction proposal awaiting confirmation; every field may be missing."""

    type: Optional[TransactionType] = None
    amount: Optional[float] = None
    category: Optional[str] = None
    date: Optional[dt.date] = None
    description: Optional[str] = None
    is_recurring: Optional[bool] = None


class GoalContribution(CamelModel):
    goal_name: str
    amount: float


class ChatMessage(CamelModel):
    id: str
    sender: Literal["user", "assistant"]
    text: str
    timestamp: int
    is_draft: bool = False
    draft_data: Optional[DraftTransaction] = None
    goal_data: Optional[GoalContribution] = None

    def history_line(self):
        return f"{self.sender}: {self.text}"
