from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class PreparedRow(BaseModel):
    product_id: str
    product_name: Optional[str] = None
    quantity: int
    updated_at: Optional[datetime] = None


class AddBatchBody(BaseModel):
    """Партия: количество намеренно не валидируется — некорректное приводится к 0."""
    product_id: str = Field(..., min_length=1)
    quantity: float = 0


class AddBatchResponse(BaseModel):
    product_id: str
    added: int
    quantity: int


class ClearPoolResponse(BaseModel):
    removed: int
