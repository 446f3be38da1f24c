import pytest

from fakes import InMemoryTransactionStore, StubGateway


@pytest.fixture
def store():
    return InMemoryTransactionStore()


@pytest.fixture
def gateway():
    return StubGateway()
