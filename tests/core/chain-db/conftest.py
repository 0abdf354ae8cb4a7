from pathlib import Path

import pytest

from beaconsync.chaindb.orm import get_session
from beaconsync.tools.factories import MemoryChainDBFactory


@pytest.fixture
def session():
    path = Path(':memory:')
    return get_session(path)


@pytest.fixture
def db_path(tmpdir):
    path = Path(str(tmpdir.join('chain.sqlite')))
    return path


@pytest.fixture
def chaindb():
    return MemoryChainDBFactory()
