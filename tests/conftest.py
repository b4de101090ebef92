"""Shared test fixtures for the ledger test suite."""

import fnmatch
import json
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock
from uuid import UUID, uuid4

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from clients.valkey_client import ValkeyClient
from core.config import LedgerConfig
from utils.tenant_context import tenant_context, clear_tenant
from utils.timezone import now_utc


# =============================================================================
# TEST TENANT CONSTANTS
# =============================================================================

# Primary test company - use for single-tenant tests
TEST_COMPANY_ID = UUID("00000000-0000-0000-0000-00000000c001")
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")

# Secondary test company - use for tenant isolation tests
TEST_COMPANY_B_ID = UUID("00000000-0000-0000-0000-00000000c002")
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")


# =============================================================================
# TENANT CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_tenant_context():
    """Ensure clean tenant context before and after each test."""
    clear_tenant()
    yield
    clear_tenant()


@pytest.fixture
def company_id() -> UUID:
    """The primary test company's ID."""
    return TEST_COMPANY_ID


@pytest.fixture
def company_b_id() -> UUID:
    """The secondary test company's ID (for isolation tests)."""
    return TEST_COMPANY_B_ID


@pytest.fixture
def user_id() -> UUID:
    return TEST_USER_ID


@pytest.fixture
def as_company(company_id, user_id):
    """Tenant context for the primary test company."""
    with tenant_context(company_id, user_id):
        yield company_id


@pytest.fixture
def as_company_b(company_b_id):
    """Tenant context for the secondary test company."""
    with tenant_context(company_b_id, TEST_USER_B_ID):
        yield company_b_id


# =============================================================================
# CONFIG
# =============================================================================


@pytest.fixture
def ledger_config() -> LedgerConfig:
    """Default config with retries that don't sleep."""
    return LedgerConfig(transition_retry_backoff_seconds=0)


# =============================================================================
# VALKEY
# =============================================================================


@pytest.fixture
def memory_valkey():
    """
    ValkeyClient double backed by a dict.

    Values round-trip as the real client returns them: strings from get(),
    decoded JSON from get_json(). TTLs are recorded but never expire.
    """
    store: dict[str, str] = {}
    ttls: dict[str, int | None] = {}
    mock = Mock(spec=ValkeyClient)

    def set_(key, value, expire_seconds=None):
        store[key] = value
        ttls[key] = expire_seconds
        return True

    def set_json(key, value, expire_seconds=None):
        return set_(key, json.dumps(value), expire_seconds)

    def get_json(key):
        raw = store.get(key)
        return json.loads(raw) if raw is not None else None

    def delete(key):
        return 1 if store.pop(key, None) is not None else 0

    mock.set.side_effect = set_
    mock.get.side_effect = store.get
    mock.get_many.side_effect = lambda keys: [store.get(k) for k in keys]
    mock.set_json.side_effect = set_json
    mock.get_json.side_effect = get_json
    mock.delete.side_effect = delete
    mock.keys_matching.side_effect = lambda pattern: sorted(
        k for k in store if fnmatch.fnmatchcase(k, pattern)
    )
    mock.store = store
    mock.ttls = ttls
    return mock


# =============================================================================
# DATABASE FIXTURES (skipped when no database is configured)
# =============================================================================


def _database_configured() -> bool:
    return bool(os.getenv("LEDGER_DATABASE_URL") and os.getenv("LEDGER_ADMIN_DATABASE_URL"))


@pytest.fixture(scope="session")
def db_admin():
    """Session-scoped admin PostgresClient (bypasses RLS, applies schema)."""
    if not _database_configured():
        pytest.skip("LEDGER_DATABASE_URL / LEDGER_ADMIN_DATABASE_URL not set")

    from clients.postgres_client import PostgresClient
    from clients.vault_client import get_admin_database_url

    client = PostgresClient(get_admin_database_url())
    schema = (Path(__file__).parent.parent / "db" / "schema.sql").read_text()
    client.execute(schema)
    yield client
    client.close()


@pytest.fixture(scope="session")
def db(db_admin):
    """Session-scoped PostgresClient (application user, RLS enforced)."""
    from clients.postgres_client import PostgresClient
    from clients.vault_client import get_database_url

    client = PostgresClient(get_database_url())
    yield client
    client.close()


@pytest.fixture
def clean_db(db_admin):
    """Empty ledger and collaborator tables, then seed one customer and invoice per company."""
    db_admin.execute("""
        TRUNCATE credit_notes, payments, ledger_sequences, audit_log,
                 invoice_items, invoices, customers, purchases, expenses
        CASCADE
    """)
    seeded = {}
    for company in (TEST_COMPANY_ID, TEST_COMPANY_B_ID):
        customer = db_admin.execute_returning(
            """
            INSERT INTO customers (company_id, name, email, phone)
            VALUES (%s, %s, %s, %s)
            RETURNING id
            """,
            (company, "Asha Traders", "asha@example.com", "+91 90000 00001")
        )[0]["id"]
        db_admin.execute(
            """
            INSERT INTO invoices (company_id, invoice_number, invoice_date, customer_id, customer_name, total_amount)
            VALUES (%s, %s, CURRENT_DATE, %s, %s, %s)
            """,
            (company, "INV-0001", customer, "Asha Traders", Decimal("1000.00"))
        )
        seeded[company] = UUID(str(customer))
    yield seeded


# =============================================================================
# ROW BUILDERS (dicts shaped like RealDictCursor rows)
# =============================================================================


@pytest.fixture
def credit_note_row(company_id):
    """Build a credit_notes row; keyword overrides replace columns."""
    def build(**overrides) -> dict:
        now = now_utc()
        row = {
            "id": uuid4(),
            "company_id": company_id,
            "credit_note_number": "CN-0001",
            "original_invoice_number": "INV-0001",
            "customer_id": None,
            "customer_name": "Asha Traders",
            "customer_email": "asha@example.com",
            "customer_phone": None,
            "total_amount": Decimal("250.00"),
            "reason": "Damaged goods",
            "credit_note_date": date(2026, 10, 1),
            "status": "draft",
            "version": 1,
            "issued_at": None,
            "applied_at": None,
            "cancelled_at": None,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        }
        row.update(overrides)
        return row

    return build


@pytest.fixture
def payment_row(company_id):
    """Build a payments row; keyword overrides replace columns."""
    def build(**overrides) -> dict:
        now = now_utc()
        row = {
            "id": uuid4(),
            "company_id": company_id,
            "payment_number": "PAY-0001",
            "reference_number": None,
            "customer_id": UUID("00000000-0000-0000-0000-0000000000aa"),
            "customer_name": "Asha Traders",
            "amount": Decimal("100.00"),
            "payment_date": date(2026, 10, 1),
            "payment_method": "UPI",
            "payment_type": "Received",
            "status": "pending",
            "description": None,
            "version": 1,
            "settled_at": None,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        }
        row.update(overrides)
        return row

    return build
