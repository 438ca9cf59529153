import os
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


ENV_VARS = {
    "RATE_LIMIT_CAPACITY": "rate_limit_capacity",
    "RATE_LIMIT_REFILL_SECONDS": "rate_limit_refill_seconds",
    "RATE_LIMIT_IDLE_TTL_SECONDS": "rate_limit_idle_ttl_seconds",
    "RATE_LIMIT_SWEEP_INTERVAL_SECONDS": "rate_limit_sweep_interval_seconds",
    "RATE_LIMIT_PATH_PREFIXES": "rate_limit_path_prefixes",
    "DATABASE_PATH": "database_path",
    "MAX_TRANSACTIONS_PER_CLIENT": "max_transactions_per_client",
    "CORS_ALLOWED_ORIGINS": "cors_allowed_origins",
    "LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    """Runtime configuration, loaded from environment variables"""

    rate_limit_capacity: int = Field(3, gt=0, description="Tokens per client per window")
    rate_limit_refill_seconds: float = Field(60.0, gt=0, description="Length of a refill window")
    # None (or 0 in the environment) disables eviction
    rate_limit_idle_ttl_seconds: Optional[float] = Field(600.0, gt=0)
    rate_limit_sweep_interval_seconds: float = Field(300.0, gt=0)
    rate_limit_path_prefixes: List[str] = Field(default_factory=lambda: ["/api/transaction"])

    database_path: str = "./data/transactions.db"
    max_transactions_per_client: int = Field(100, gt=0)
    cors_allowed_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"

    @field_validator("rate_limit_idle_ttl_seconds", mode="before")
    @classmethod
    def _zero_disables_eviction(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if value in ("0", "0.0"):
                return None
        elif value == 0:
            return None
        return value

    @field_validator("rate_limit_path_prefixes", "cors_allowed_origins", mode="before")
    @classmethod
    def _split_csv(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_idle_ttl(self):
        ttl = self.rate_limit_idle_ttl_seconds
        if ttl is not None and ttl < self.rate_limit_refill_seconds:
            raise ValueError(
                "rate_limit_idle_ttl_seconds must be at least rate_limit_refill_seconds"
            )
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment; raw strings are validated by the model"""
        values = {field: os.environ[var] for var, field in ENV_VARS.items() if var in os.environ}
        return cls(**values)
