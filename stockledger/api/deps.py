"""
API Dependencies
Common dependencies for API endpoints
"""
from fastapi import Header

from stockledger.core.database import get_db

__all__ = ["get_db", "get_owner_id"]


def get_owner_id(x_owner_id: int = Header(..., alias="X-Owner-Id", gt=0)) -> int:
    """
    Owning seller account of the request.

    Authentication happens in front of this service; the gateway forwards
    the authenticated account id in the X-Owner-Id header.
    """
    return x_owner_id
