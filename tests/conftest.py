import pytest

from fakes import FakeActions, FakeConnector, StubConnection


@pytest.fixture
def actions() -> FakeActions:
    return FakeActions()


@pytest.fixture
def connection() -> StubConnection:
    return StubConnection()


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()
