"""Shared fixtures for the dynamic DNS server tests."""

import pytest

from dyndns.core import QueryResolver, RequestHandler, UpdateEngine
from dyndns.storage import open_record_store


@pytest.fixture
def store(tmp_path):
    """A fresh record store in a temporary directory."""
    record_store = open_record_store(tmp_path / "dyndns.db")
    yield record_store
    record_store.close()


@pytest.fixture
def engine(store):
    return UpdateEngine(store)


@pytest.fixture
def resolver(store):
    return QueryResolver(store)


@pytest.fixture
def handler(store):
    return RequestHandler(store)
