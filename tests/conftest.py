"""
Pytest fixtures for the sign-off test suite.

Provides:
- An in-memory SQLite database per test (override with DATABASE_URL)
- Sessions, a session factory and a deterministic clock
- Fake registration and notification collaborators
- A WorkflowExecutor whose notifications are delivered inline
- Structured log capture

Environment Variables:
- DATABASE_URL: database to run against instead of in-memory SQLite.
"""

import json
import logging
import os
from io import StringIO
from uuid import UUID, uuid4

import pytest

from signoff_config import get_active_config
from signoff_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from signoff_kernel.domain.clock import DeterministicClock
from signoff_kernel.domain.document import (
    ActorContext,
    DocumentType,
)
from signoff_kernel.domain.signature import SignerRole
from signoff_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from signoff_services.collaborators import NotificationDispatcher
from signoff_services.document_query import DocumentQueryService
from signoff_services.workflow_executor import WorkflowExecutor
from tests.support import FakeNotifier, FakeRegistration, InlineExecutor

DEFAULT_DATABASE_URL = "sqlite:///:memory:"


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


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
    Capture signoff_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, executor):
            executor.approve(...)
            logs = captured_logs()
            assert any(r["message"] == "signature_approved" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("signoff_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    """Fresh schema per test."""
    eng = init_engine_from_url(get_database_url())
    drop_tables()
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session_factory(engine):
    return get_session_factory()


@pytest.fixture
def session(session_factory):
    """A session for direct service/store tests.  Rolled back afterwards."""
    sess = session_factory()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def query(session_factory):
    """Factory returning a DocumentQueryService on a fresh session.

    A fresh session per call so reads never come from a stale identity map.
    """
    opened = []

    def _query() -> DocumentQueryService:
        sess = session_factory()
        opened.append(sess)
        return DocumentQueryService(sess)

    yield _query

    for sess in opened:
        sess.close()


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


@pytest.fixture
def workflow_config():
    return get_active_config()


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def registration():
    return FakeRegistration()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def dispatcher(notifier):
    return NotificationDispatcher(notifier, executor=InlineExecutor())


@pytest.fixture
def executor(session_factory, registration, dispatcher, workflow_config, deterministic_clock):
    return WorkflowExecutor(
        session_factory,
        registration,
        config=workflow_config,
        clock=deterministic_clock,
        dispatcher=dispatcher,
    )


# =============================================================================
# People
# =============================================================================


@pytest.fixture
def advisor_id() -> UUID:
    return uuid4()


@pytest.fixture
def coordinator_id() -> UUID:
    return uuid4()


@pytest.fixture
def student_id() -> UUID:
    return uuid4()


@pytest.fixture
def advisor(advisor_id) -> ActorContext:
    return ActorContext(actor_id=advisor_id, role=SignerRole.ADVISOR)


@pytest.fixture
def coordinator(coordinator_id) -> ActorContext:
    return ActorContext(actor_id=coordinator_id, role=SignerRole.COORDINATOR)


@pytest.fixture
def student(student_id) -> ActorContext:
    return ActorContext(actor_id=student_id, role=SignerRole.STUDENT)


@pytest.fixture
def submit(executor, student, advisor_id, coordinator_id):
    """Factory fixture: submit a minutes document with advisor and coordinator slots.

    Returns the created ``DocumentVersion``.
    """

    def _submit(assignments=None, **kwargs):
        result = executor.submit_document(
            kwargs.pop("document_type", DocumentType.MINUTES),
            assignments or {
                SignerRole.ADVISOR: advisor_id,
                SignerRole.COORDINATOR: coordinator_id,
            },
            kwargs.pop("actor", student),
            **kwargs,
        )
        return result.new_version

    return _submit

