from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Optional
from datetime import datetime


class TransactionRequest(BaseModel):
    """Payload accepted when creating or updating a transaction"""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "amount": 10000,
                "businessName": "Supermarket",
                "name": "Jane Doe"
            }
        }
    )

    amount: int = Field(..., ge=0, description="Transaction amount, in the smallest currency unit")
    business_name: str = Field(..., alias="businessName", max_length=255, description="Merchant or business line")
    name: str = Field(..., max_length=255, description="Name of the customer who made the transaction")

    @field_validator("business_name", "name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class TransactionResponse(BaseModel):
    """Transaction as stored and returned by the API"""
    id: int = Field(..., description="Identifier assigned by the store")
    amount: int = Field(..., description="Transaction amount")
    business_name: str = Field(..., alias="businessName", description="Merchant or business line")
    name: str = Field(..., description="Customer name")
    transaction_date: datetime = Field(..., alias="transactionDate", description="When the transaction was recorded")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "amount": 10000,
                "businessName": "Supermarket",
                "name": "Jane Doe",
                "transactionDate": "2024-05-02T10:30:00"
            }
        }
    )


class ErrorResponse(BaseModel):
    """Standard error response format for all API errors"""
    status: int = Field(..., description="HTTP status code")
    error: str = Field(..., description="Error category for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[List[str]] = Field(None, description="Per-field validation messages, when any")
    timestamp: datetime = Field(..., description="When the error was produced")
    path: str = Field(..., description="Request path that failed")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": 429,
                "error": "Rate Limit Exceeded",
                "message": "Rate limit of 3 requests per 60 seconds exceeded. Please try again later.",
                "details": None,
                "timestamp": "2024-05-02T10:30:00",
                "path": "/api/transaction"
            }
        }
    )


class HealthResponse(BaseModel):
    """Health check response indicating service status"""
    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name/identifier")
    timestamp: int = Field(..., description="Current server timestamp (Unix time)")


class RateLimitStats(BaseModel):
    """Rate limiter statistics model"""
    total_clients: int = Field(..., description="Clients currently holding a bucket")
    capacity: int = Field(..., description="Tokens per client per window")
    refill_interval_seconds: float = Field(..., description="Window length")
    idle_ttl_seconds: Optional[float] = Field(None, description="Idle time before a bucket is evicted; null when eviction is off")
    sweep_interval_seconds: float = Field(..., description="Minimum time between eviction sweeps")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total_clients": 42,
                "capacity": 3,
                "refill_interval_seconds": 60.0,
                "idle_ttl_seconds": 600.0,
                "sweep_interval_seconds": 300.0
            }
        }
    )
