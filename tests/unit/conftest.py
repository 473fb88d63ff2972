import pytest

from fakes import novo_contexto


@pytest.fixture
def ctx():
    return novo_contexto()
