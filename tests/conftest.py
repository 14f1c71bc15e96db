import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from db.repository import create_repository
from journal.schema import CheckIn, Product, Session


@pytest.fixture
def repo(tmp_path):
    """An isolated file-backed store per test."""
    return create_repository(f"sqlite:///{tmp_path / 'vapelog.db'}")


@pytest.fixture
def add_product(repo):
    def _add(name="Blue Dream", type="flower", route="inhalation", **fields):
        return repo.add_product(Product(name=name, type=type, route=route, **fields))

    return _add


@pytest.fixture
def log_session(repo):
    def _log(product, date_time=None, **fields):
        if date_time is None:
            date_time = datetime(2024, 7, 1, 20, 0, tzinfo=timezone.utc)
        return repo.add_session(Session(product_id=product.id, date_time=date_time, **fields))

    return _log


@pytest.fixture
def check_in(repo):
    def _check_in(session, minutes_after=30, **ratings):
        return repo.add_check_in(
            CheckIn(session_id=session.id, minutes_after=minutes_after, **ratings)
        )

    return _check_in
