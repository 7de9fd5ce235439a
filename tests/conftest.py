import pytest

from effluent_core.regulations import load_table


@pytest.fixture(scope="session")
def table():
    return load_table()
