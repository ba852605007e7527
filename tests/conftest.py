# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from app.checkout import CheckoutCoordinator
from app.config import Settings
from app.core import ProductIn
from app.database import Database
from app.main import create_app
from app.repository import ProductRepository


@pytest.fixture
def png_bytes():
    # smallest valid PNG: signature + IHDR + IDAT + IEND
    return bytes.fromhex(
        "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
        "1f15c4890000000d49444154789c63f8cfc0f01f0005000201a5f6b9e5"
        "0000000049454e44ae426082"
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'store.db'}",
        UPLOAD_DIR=tmp_path / "uploads",
        CHECKOUT_TIMEOUT=5.0,
    )


@pytest.fixture
def database(settings):
    db = Database(settings.sqlalchemy_url)
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def repo(database):
    return ProductRepository(database)


@pytest.fixture
def coordinator(database):
    return CheckoutCoordinator(database, timeout=5.0)


@pytest.fixture
def make_product(repo):
    def _make(name="Widget", price=9.99, quantity=2, code="W1", image=None):
        return repo.create(ProductIn(name=name, price=str(price), quantity=quantity, code=code), image)
    return _make


@pytest.fixture
def app(settings, database):
    return create_app(settings, database)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
