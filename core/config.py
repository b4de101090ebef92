"""Ledger engine configuration."""

from pydantic import BaseModel, Field, field_validator

from utils.timezone import reporting_zone


class LedgerConfig(BaseModel):
    """
    Tunables for the ledger engine.

    Defaults match the production dashboard: ten rows per page, INR
    amounts, periods resolved on the Indian calendar day.
    """

    # Listing
    default_page_size: int = Field(
        default=10,
        description="Rows per page when the client does not ask for a limit",
        ge=1,
    )
    max_page_size: int = Field(
        default=100,
        description="Hard upper bound on rows per page, whatever the client requests",
        ge=1,
        le=1000,
    )

    # Concurrency
    transition_retry_attempts: int = Field(
        default=3,
        description="Attempts at a status transition before reporting a conflict",
        ge=1,
        le=10,
    )
    transition_retry_backoff_seconds: float = Field(
        default=0.05,
        description="Base delay between transition attempts (doubles each retry)",
        ge=0,
    )

    # Analytics
    default_period: str = Field(
        default="30days",
        description="Named period used when a request names none",
        pattern="^(7days|30days|90days|1year)$",
    )
    reporting_timezone: str = Field(
        default="Asia/Kolkata",
        description="IANA timezone whose calendar day bounds reporting periods",
    )
    currency: str = Field(
        default="INR",
        description="Reporting currency (ISO 4217)",
        min_length=3,
        max_length=3,
    )
    snapshot_ttl_seconds: int = Field(
        default=86400,
        description="How long a published analytics snapshot is kept",
        ge=60,
    )

    @field_validator("reporting_timezone")
    @classmethod
    def known_timezone(cls, value: str) -> str:
        reporting_zone(value)
        return value
