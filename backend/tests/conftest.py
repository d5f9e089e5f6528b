"""
Shared fixtures: in-memory SQLite, a repository bound to it, and a
reconciler whose "background" writes run inline so tests can assert on them.
"""
from concurrent.futures import Executor, Future
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pulse import models  # noqa: F401
from pulse.db import Base
from pulse.deps import get_reconciler, get_repository
from pulse.main import app
from pulse.reconcile import RiskReconciler
from pulse.repository import SqlResidentRepository


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:
            future.set_exception(e)
        return future


class FlakyRepository(SqlResidentRepository):
    """Repository whose partial updates fail for selected residents."""

    def __init__(self, session_factory, fail_ids=()):
        super().__init__(session_factory)
        self.fail_ids = set(fail_ids)

    def update_resident(self, resident_id, fields):
        if resident_id in self.fail_ids:
            raise RuntimeError("database unavailable")
        return super().update_resident(resident_id, fields)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def repo(session_factory):
    return SqlResidentRepository(session_factory)


@pytest.fixture
def flaky_repo(session_factory):
    def _make(fail_ids=()):
        return FlakyRepository(session_factory, fail_ids)

    return _make


@pytest.fixture
def executor():
    return InlineExecutor()


@pytest.fixture
def reconciler(repo, executor):
    return RiskReconciler(repo, executor=executor)


@pytest.fixture
def make_resident(repo):
    seq = count(1)

    def _make(**overrides):
        n = next(seq)
        fields = {
            "first_name": "Juan",
            "last_name": f"Dela Cruz {n:03d}",
            "age": 30,
            "sex": "Male",
            "address": "Purok 1",
            "risk_score": 0,
            "risk_level": "Low",
        }
        fields.update(overrides)
        return repo.create_resident(fields)

    return _make


@pytest.fixture
def client(repo, reconciler):
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_reconciler] = lambda: reconciler
    yield TestClient(app)
    app.dependency_overrides.clear()

