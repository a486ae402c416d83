"""Pydantic models for Expense data"""
from pydantic import BaseModel, ConfigDict
from typing import Any, Union

# Fields forwarded to the upstream store on create/update
EXPENSE_FIELDS = ('title', 'nominal', 'type', 'category', 'date')


class ExpenseWrite(BaseModel):
    """
    Body accepted by create and update.

    Values are not validated here; whatever the client sends for these five
    fields is forwarded to the upstream store untouched. Unknown keys are dropped.
    """
    model_config = ConfigDict(extra='ignore')

    title: Any = None
    nominal: Any = None
    type: Any = None  # 'income' | 'expense'
    category: Any = None  # 'salary' | 'food' | 'transport'
    date: Any = None

    def to_upstream(self) -> dict:
        """Returns only the fields the client actually sent."""
        return self.model_dump(include=set(EXPENSE_FIELDS), exclude_unset=True)

    @classmethod
    def payload_from(cls, body: Any) -> dict:
        """Upstream payload for a raw request body; anything but a JSON object forwards {}."""
        if not isinstance(body, dict):
            return {}
        return cls.model_validate(body).to_upstream()


class ExpenseRecord(BaseModel):
    """
    An expense as stored upstream, typed only as far as aggregation needs.
    Everything else on the record is kept as an extra field.
    """
    model_config = ConfigDict(extra='allow')

    nominal: Union[int, float]
    category: Any = None
    date: Any = None


class TotalResponse(BaseModel):
    total: Union[int, float]


class ErrorResponse(BaseModel):
    message: str
    error: dict
