from typing import Dict, List
from pydantic import BaseModel


class FifoResponse(BaseModel):
    """allocation: order_id -> product_id -> выделено единиц."""
    allocation: Dict[str, Dict[str, int]]
    prepared: Dict[str, int]
    totals: Dict[str, int]
    satisfied: List[str]
    promoted: List[str] = []
