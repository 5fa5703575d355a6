"""
Stockledger Common Schemas
Shared Pydantic models and the boundary encoding for identifiers
"""
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer


def encode_id(value: Optional[int]) -> Optional[str]:
    """
    Encode a 64-bit identifier for the external interface.

    JavaScript clients lose precision above 2**53, so every id leaves the
    service as a decimal string. Requests accept either form.
    """
    if value is None:
        return None
    return str(int(value))


ExternalId = Annotated[int, PlainSerializer(encode_id, return_type=str, when_used="json")]


class OrmModel(BaseModel):
    """Base for responses built from ORM rows or service result objects"""
    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    """
    Standard error response model

    Used for all API error responses
    """
    error: str = Field(..., description="Error type or category")
    message: str = Field(..., description="Human-readable error message")
    detail: Dict[str, Any] = Field(default_factory=dict, description="Structured error details")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "error": "insufficient_stock",
            "message": "Insufficient stock for product 12 in warehouse 3: requested 6, available 5",
            "detail": {
                "product_id": "12",
                "warehouse_id": "3",
                "requested": 6,
                "available": 5,
                "shortfall": 1
            }
        }
    })


class ProductTotal(OrmModel):
    """Total on-hand quantity of a marketplace-linked product across all warehouses"""
    product_id: ExternalId
    on_hand: int
