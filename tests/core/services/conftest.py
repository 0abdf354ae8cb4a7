import pytest

from beaconsync.tools.factories import MemoryChainDBFactory


@pytest.fixture
def chaindb():
    return MemoryChainDBFactory()
