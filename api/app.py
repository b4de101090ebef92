"""
Application assembly: clients, services, event wiring and routers.

Run with:
    uvicorn api.app:create_app_from_env --factory
"""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI

from api.analytics import create_analytics_router
from api.base import success_response
from api.credit_notes import create_credit_notes_router
from api.customers import create_customers_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from api.payments import create_payments_router
from auth.api import create_auth_router
from auth.config import AuthConfig
from auth.security_middleware import AuthMiddleware
from auth.session import SessionManager
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import get_database_url, get_valkey_url
from core.audit import AuditLogger
from core.config import LedgerConfig
from core.event_bus import EventBus
from core.handlers import analytics_refresh_handler
from core.refresher import SnapshotRefresher
from core.sequences import SequenceAllocator
from core.services.analytics_service import AnalyticsService
from core.services.credit_note_service import CreditNoteService
from core.services.payment_service import PaymentService
from core.snapshot_store import SnapshotStore
from core.sources import CustomerDirectory, InvoiceDirectory

logger = logging.getLogger(__name__)


def build_services(postgres: PostgresClient, valkey: ValkeyClient, config: LedgerConfig) -> dict:
    """Construct every service and subscribe the event handlers."""
    audit = AuditLogger(postgres)
    event_bus = EventBus()
    sequences = SequenceAllocator(postgres)
    customers = CustomerDirectory(postgres)
    invoices = InvoiceDirectory()

    analytics = AnalyticsService(
        postgres=postgres,
        snapshots=SnapshotStore(valkey, config.snapshot_ttl_seconds),
        event_bus=event_bus,
        config=config,
    )
    refresher = SnapshotRefresher(analytics)
    analytics_refresh_handler.register(event_bus, refresher)

    return {
        "event_bus": event_bus,
        "customers": customers,
        "credit_note": CreditNoteService(
            postgres, audit, event_bus, sequences, customers, invoices, config
        ),
        "payment": PaymentService(postgres, audit, event_bus, sequences, customers, config),
        "analytics": analytics,
        "refresher": refresher,
    }


def create_app(services: dict, session_manager: SessionManager, lifespan=None) -> FastAPI:
    """Build the FastAPI app around already-constructed services."""
    app = FastAPI(title="Ledger", lifespan=lifespan)

    api = APIRouter(prefix="/api")
    api.include_router(create_credit_notes_router(services))
    api.include_router(create_payments_router(services))
    api.include_router(create_customers_router(services))
    api.include_router(create_analytics_router(services))
    app.include_router(api)
    app.include_router(create_auth_router(session_manager), prefix="/auth")

    @app.get("/health")
    async def health():
        return success_response({"status": "ok"}).model_dump(mode="json")

    # Added last so it runs first: request id is set before auth decides
    app.add_middleware(AuthMiddleware, session_manager=session_manager)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    return app


def create_app_from_env() -> FastAPI:
    """Production entry point: secrets from Vault (or LEDGER_* env overrides)."""
    load_dotenv()

    postgres = PostgresClient(get_database_url())
    valkey = ValkeyClient(get_valkey_url())
    services = build_services(postgres, valkey, LedgerConfig())
    session_manager = SessionManager(valkey, AuthConfig())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        services["refresher"].shutdown(wait=False)
        valkey.close()
        PostgresClient.close_all_pools()

    app = create_app(services, session_manager, lifespan=lifespan)

    logger.info("Ledger API ready")
    return app
