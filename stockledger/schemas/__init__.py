"""
Stockledger Pydantic Schemas
Request/response models for the HTTP API
"""
from .common import ErrorResponse, ExternalId, OrmModel, ProductTotal, encode_id

__all__ = ["ErrorResponse", "ExternalId", "OrmModel", "ProductTotal", "encode_id"]
