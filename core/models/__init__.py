"""Core domain models."""

from core.models.customer import Customer, CustomerSnapshot
from core.models.credit_note import (
    CreditNote, CreditNoteCreate, CreditNoteUpdate, CreditNoteStatus,
    CreditNoteStatusChange, CreditNoteStats, StatusBreakdown,
)
from core.models.payment import (
    Payment, PaymentCreate, PaymentMethod, PaymentType, PaymentStatus, PaymentStats,
)
from core.models.statement import Statement, StatementRow
from core.models.analytics import (
    AnalyticsSnapshot, Period, Overview, PaymentAnalytics, TopProducts, TopCustomers,
    MethodTotal, TypeTotal, DailyTotal, DailyFlow,
    ProductRank, CustomerRank, RealizedCredit, SectionWarning,
)
from core.models.query import ListQuery, Page, Pagination
from core.models.source_records import SaleRecord, SaleLine, AmountRecord

__all__ = [
    # Customer
    "Customer", "CustomerSnapshot",
    # CreditNote
    "CreditNote", "CreditNoteCreate", "CreditNoteUpdate", "CreditNoteStatus",
    "CreditNoteStatusChange", "CreditNoteStats", "StatusBreakdown",
    # Payment
    "Payment", "PaymentCreate", "PaymentMethod", "PaymentType", "PaymentStatus", "PaymentStats",
    # Statement
    "Statement", "StatementRow",
    # Analytics
    "AnalyticsSnapshot", "Period", "Overview", "PaymentAnalytics", "TopProducts", "TopCustomers",
    "MethodTotal", "TypeTotal", "DailyTotal", "DailyFlow",
    "ProductRank", "CustomerRank", "RealizedCredit", "SectionWarning",
    # Query
    "ListQuery", "Page", "Pagination",
    # Collaborator records
    "SaleRecord", "SaleLine", "AmountRecord",
]
