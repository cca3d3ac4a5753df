"""
Pytest fixtures for the chart-of-accounts kernel test suite.

Provides:
- Database sessions with per-test rollback isolation
- Service, selector and factory fixtures
- Captured structured logs

Environment Variables:
- DATABASE_URL: connection URL for the test database.  Defaults to an
  in-memory SQLite database.  Tests marked ``postgres`` need a PostgreSQL
  URL and are skipped otherwise.
"""

import json
import logging
import os
import threading
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy import text
from sqlalchemy.orm import Session

from coa_kernel.db.base import Base
from coa_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from coa_kernel.domain.clock import DeterministicClock
from coa_kernel.domain.dtos import CreateAccountCommand, PostTransactionCommand
from coa_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from coa_kernel.selectors.account_selector import AccountSelector
from coa_kernel.selectors.posting_selector import PostingSelector
from coa_kernel.services.account_service import AccountService
from coa_kernel.services.chart_service import ChartOfAccountsService
from coa_kernel.services.posting_service import PostingService

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

DEFAULT_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


def pytest_collection_modifyitems(config, items):
    if get_database_url().startswith("postgresql"):
        return
    skip_pg = pytest.mark.skip(reason="requires DATABASE_URL pointing at PostgreSQL")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_pg)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture coa_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, chart_service):
            chart_service.create_account(...)
            logs = captured_logs()
            assert any(r["message"] == "account_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("coa_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Session-scoped DB infrastructure (create engine + tables ONCE per suite)
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(
        get_database_url(), echo=False,
        pool_size=30, max_overflow=20, pool_timeout=10,
    )
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end."""
    drop_tables()
    create_tables()
    yield
    drop_tables()


def _truncate_all_tables(engine):
    """Remove all rows; used after tests that really commit."""
    table_names = [t.name for t in reversed(Base.metadata.sorted_tables)]
    if not table_names:
        return
    with engine.connect() as conn:
        if engine.dialect.name == "postgresql":
            conn.execute(text("TRUNCATE " + ", ".join(table_names) + " CASCADE"))
        else:
            for name in table_names:
                conn.execute(text(f"DELETE FROM {name}"))
        conn.commit()


# =============================================================================
# Per-test session with automatic rollback
# =============================================================================


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    Uses the SQLAlchemy 2.0 ``join_transaction_mode`` pattern:
    - Opens a dedicated connection with an outer transaction
    - Creates a session that *joins* the outer transaction
    - Any ``session.commit()`` inside the test releases a savepoint -- it
      does NOT actually commit to the database
    - At teardown the outer transaction is rolled back, undoing ALL data
      changes made during the test
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Concurrency testing fixtures (real commits + cleanup)
# =============================================================================


@pytest.fixture(scope="function")
def pg_session_factory(db_engine, db_tables):
    """Provide a tracked session factory for creating sessions in concurrent threads.

    Each thread should create its own session using this factory.  On
    teardown all tracked sessions are rolled back and closed, then every
    table is emptied.
    """
    factory = get_session_factory()
    created_sessions = []
    lock = threading.Lock()
    closed = False

    def tracked_factory():
        with lock:
            if closed:
                raise RuntimeError("pg_session_factory closed (fixture teardown)")
            s = factory()
            created_sessions.append(s)
            return s

    yield tracked_factory

    with lock:
        closed = True

    for s in created_sessions:
        if s.is_active:
            s.rollback()
        s.close()

    _truncate_all_tables(db_engine)


# =============================================================================
# Actors and clocks
# =============================================================================


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


# =============================================================================
# Service and selector fixtures
# =============================================================================


@pytest.fixture
def chart_service(session: Session, deterministic_clock) -> ChartOfAccountsService:
    """Provide the atomic command facade."""
    return ChartOfAccountsService(session, clock=deterministic_clock)


@pytest.fixture
def account_service(session: Session, deterministic_clock) -> AccountService:
    return AccountService(session, clock=deterministic_clock)


@pytest.fixture
def posting_service(session: Session, deterministic_clock) -> PostingService:
    return PostingService(session, clock=deterministic_clock)


@pytest.fixture
def account_selector(session: Session) -> AccountSelector:
    return AccountSelector(session)


@pytest.fixture
def posting_selector(session: Session, deterministic_clock) -> PostingSelector:
    return PostingSelector(session, clock=deterministic_clock)


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def create_account(chart_service, test_actor_id):
    """Factory fixture creating accounts through the command facade.

    Usage::

        cash = create_account("Cash", "asset")
        petty = create_account("Petty Cash", "asset", parent=cash)
    """

    def _create(
        name: str = "Account",
        account_type: str = "asset",
        parent=None,
        opening_balance: Decimal = Decimal("0"),
        is_active: bool = True,
        description: str | None = None,
    ):
        return chart_service.create_account(
            CreateAccountCommand(
                name=name,
                account_type=account_type,
                parent_id=parent.id if parent is not None else None,
                opening_balance=opening_balance,
                is_active=is_active,
                description=description,
            ),
            actor_id=test_actor_id,
        )

    return _create


@pytest.fixture
def post(chart_service, test_actor_id):
    """Factory fixture posting a single debit or credit.

    Usage::

        post(cash, debit=Decimal("100.00"))
        post(cash, credit=Decimal("40.00"), on=date(2024, 2, 1))
    """

    def _post(
        account,
        debit: Decimal = Decimal("0"),
        credit: Decimal = Decimal("0"),
        on: date = date(2024, 1, 15),
        description: str = "Test posting",
        notes: str | None = None,
    ):
        return chart_service.post_transaction(
            PostTransactionCommand(
                account_id=account.id,
                transaction_date=on,
                description=description,
                debit=debit,
                credit=credit,
                notes=notes,
            ),
            actor_id=test_actor_id,
        )

    return _post


@pytest.fixture
def standard_chart(create_account):
    """A small chart with one root per type and a two-level asset branch.

    Returns a dict of AccountInfo keyed by short name::

        assets (1000)
          current (100001)
            cash (10000101)
            bank (10000102)
          fixed (100002)
        liabilities (2000)
        equity (3000)
        revenue (4000)
        expenses (5000)
    """
    accounts = {}
    accounts["assets"] = create_account("Assets", "asset")
    accounts["current"] = create_account("Current Assets", "asset", parent=accounts["assets"])
    accounts["cash"] = create_account("Cash", "asset", parent=accounts["current"])
    accounts["bank"] = create_account("Bank", "asset", parent=accounts["current"])
    accounts["fixed"] = create_account("Fixed Assets", "asset", parent=accounts["assets"])
    accounts["liabilities"] = create_account("Liabilities", "liability")
    accounts["equity"] = create_account("Equity", "equity")
    accounts["revenue"] = create_account("Revenue", "revenue")
    accounts["expenses"] = create_account("Expenses", "expense")
    return accounts
