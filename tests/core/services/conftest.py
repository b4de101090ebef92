"""Service test fixtures: collaborators mocked at the client boundary."""

from unittest.mock import MagicMock, Mock

import pytest

from clients.postgres_client import PostgresClient, Transaction
from core.audit import AuditLogger
from core.event_bus import EventBus
from core.sequences import SequenceAllocator
from core.sources import CustomerDirectory, InvoiceDirectory


@pytest.fixture
def write_tx():
    """Transaction handed out by postgres.transaction()."""
    return MagicMock(spec=Transaction)


@pytest.fixture
def transaction(write_tx):
    """The postgres.transaction() context manager; __exit__ sees any error raised inside."""
    cm = MagicMock()
    cm.__enter__.return_value = write_tx
    cm.__exit__.return_value = False
    return cm


@pytest.fixture
def postgres(transaction):
    mock = Mock(spec=PostgresClient)
    mock.transaction.return_value = transaction
    return mock


@pytest.fixture
def audit():
    return Mock(spec=AuditLogger)


@pytest.fixture
def published():
    """Events published on the bus, in order."""
    return []


@pytest.fixture
def event_bus(published):
    bus = EventBus()
    for name in (
        "CreditNoteIssued", "CreditNoteApplied", "CreditNoteCancelled",
        "PaymentRecorded", "PaymentCompleted", "PaymentVoided",
        "AnalyticsSnapshotPublished",
    ):
        bus.subscribe(name, published.append)
    return bus


@pytest.fixture
def sequences():
    mock = Mock(spec=SequenceAllocator)
    mock.next_number.side_effect = lambda name, tx=None: {"credit_note": "CN-0002", "payment": "PAY-0002"}[name]
    return mock


@pytest.fixture
def customers():
    return Mock(spec=CustomerDirectory)


@pytest.fixture
def invoices():
    mock = Mock(spec=InvoiceDirectory)
    mock.lock_total.return_value = None
    return mock
