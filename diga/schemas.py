"""
Interchange format between intent resolution and the conversation layer.

Both the remote model and the offline resolver produce an ``AIResponse``: a
union of response variants tagged by ``intent``. Each variant carries only
the payload its intent needs, so an ``add_to_goal`` response without its
``addToGoal`` payload cannot be built or parsed.
"""

import datetime as dt
import json
import re
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import ConfigDict, Field, TypeAdapter

from diga.models import CamelModel, TransactionType


class Intent(str, Enum):
    CHAT = "chat"
    TRANSACTION_PROPOSAL = "transaction_proposal"
    CHECK_BUDGET = "check_budget"
    UPDATE_INCOME = "update_income"
    CREATE_GOAL = "create_goal"
    ADD_TO_GOAL = "add_to_goal"
    UPDATE_GOAL_PLAN = "update_goal_plan"
    SET_BUDGET_LIMIT = "set_budget_limit"


class _StrictModel(CamelModel):
    model_config = ConfigDict(extra="forbid")


class ExtractedTransaction(_StrictModel):
    type: TransactionType
    amount: float
    category: str
    date: Optional[dt.date] = None
    description: str = ""
    is_recurring: bool = False


class NewGoal(_StrictModel):
    name: str
    target_amount: float
    planned_months: Optional[int] = None


class GoalDeposit(_StrictModel):
    goal_name: str
    amount: float


class GoalPlan(_StrictModel):
    goal_name: Optional[str] = None
    months: int
    amount: Optional[float] = None


class LimitRequest(_StrictModel):
    category: str
    amount: float


class IncomeUpdate(_StrictModel):
    monthly_income: float


class _Response(_StrictModel):
    response_text: str


class ChatResponse(_Response):
    intent: Literal["chat"] = "chat"


class TransactionProposal(_Response):
    intent: Literal["transaction_proposal"] = "transaction_proposal"
    extracted_transaction: ExtractedTransaction


class BudgetCheck(_Response):
    intent: Literal["check_budget"] = "check_budget"
    budget_analysis: Optional[Literal["safe", "warning", "danger"]] = None


class IncomeUpdateRequest(_Response):
    intent: Literal["update_income"] = "update_income"
    new_income: IncomeUpdate


class GoalCreation(_Response):
    intent: Literal["create_goal"] = "create_goal"
    new_goal: NewGoal


class GoalContributionRequest(_Response):
    intent: Literal["add_to_goal"] = "add_to_goal"
    add_to_goal: GoalDeposit


class GoalPlanUpdate(_Response):
    intent: Literal["update_goal_plan"] = "update_goal_plan"
    goal_plan: GoalPlan


class BudgetLimitRequest(_Response):
    intent: Literal["set_budget_limit"] = "set_budget_limit"
    set_limit: LimitRequest


AIResponse = Annotated[
    Union[
        ChatResponse,
        TransactionProposal,
        BudgetCheck,
        IncomeUpdateRequest,
        GoalCreation,
        GoalContributionRequest,
        GoalPlanUpdate,
        BudgetLimitRequest,
    ],
    Field(discriminator="intent"),
]

_ADAPTER = TypeAdapter(AIResponse)


def _strip_nulls(data):
    if not isinstance(data, dict):
        return data
    return {k: _strip_nulls(v) for k, v in data.items() if v is not None}


def parse_ai_response(raw):
    """Parse model output (JSON text or dict) into an ``AIResponse``.

    Raises ``ValueError`` (``json.JSONDecodeError`` or pydantic
    ``ValidationError``) when the payload does not match the schema.
    """
    if isinstance(raw, (str, bytes)):
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        text = text.replace("```json", "").replace("```", "").strip()
        match = re.search(r"\{.*\}", text, re.DOTALL)
        if match:
            text = match.group(0)
        data = json.loads(text)
    else:
        data = raw
    if not isinstance(data, dict):
        raise ValueError("resposta do modelo não é um objeto JSON")
    return _ADAPTER.validate_python(_strip_nulls(data))


def dump_ai_response(response):
    return response.model_dump(mode="json", by_alias=True, exclude_none=True)


# Response schema handed to Gemini (OpenAPI subset accepted by google-genai).
RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "responseText": {"type": "STRING"},
        "intent": {"type": "STRING", "enum": [i.value for i in Intent]},
        "extractedTransaction": {
            "type": "OBJECT",
            "properties": {
                "type": {"type": "STRING", "enum": ["INCOME", "EXPENSE"]},
                "amount": {"type": "NUMBER"},
                "category": {"type": "STRING"},
                "date": {"type": "STRING"},
                "description": {"type": "STRING"},
                "isRecurring": {"type": "BOOLEAN"},
            },
            "required": ["type", "amount", "category"],
            "nullable": True,
        },
        "budgetAnalysis": {"type": "STRING", "enum": ["safe", "warning", "danger"], "nullable": True},
        "newIncome": {
            "type": "OBJECT",
            "properties": {"monthlyIncome": {"type": "NUMBER"}},
            "required": ["monthlyIncome"],
            "nullable": True,
        },
        "newGoal": {
            "type": "OBJECT",
            "properties": {
                "name": {"type": "STRING"},
                "targetAmount": {"type": "NUMBER"},
                "plannedMonths": {"type": "INTEGER"},
            },
            "required": ["name", "targetAmount"],
            "nullable": True,
        },
        "addToGoal": {
            "type": "OBJECT",
            "properties": {"goalName": {"type": "STRING"}, "amount": {"type": "NUMBER"}},
            "required": ["goalName", "amount"],
            "nullable": True,
        },
        "goalPlan": {
            "type": "OBJECT",
            "properties": {
                "goalName": {"type": "STRING"},
                "months": {"type": "INTEGER"},
                "amount": {"type": "NUMBER"},
            },
            "required": ["months"],
            "nullable": True,
        },
        "setLimit": {
            "type": "OBJECT",
            "properties": {"category": {"type": "STRING"}, "amount": {"type": "NUMBER"}},
            "required": ["category", "amount"],
            "nullable": True,
        },
    },
    "required": ["responseText", "intent"],
}
