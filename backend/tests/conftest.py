import os
import tempfile

# must be set before backend.app.db.session creates the engine
_TMP_DIR = tempfile.mkdtemp(prefix="inventory-tests-")
os.environ["DATABASE_URL"] = os.getenv(
    "TEST_DATABASE_URL",
    f"sqlite+pysqlite:///{os.path.join(_TMP_DIR, 'test.db')}",
)

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from backend.app.api.deps import get_db  # noqa: E402
from backend.app.db.base import Base  # noqa: E402
from backend.app.db.session import SessionLocal, engine  # noqa: E402
from backend.app.db.models.models_v1 import Category, Product  # noqa: E402
from backend.app.main import app  # noqa: E402
from backend.services import auth as auth_service  # noqa: E402


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Fresh schema per test.

    Sessions opened by the app (or by threads in a test) see the same file
    database, so committed rows are visible everywhere.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session) -> TestClient:
    def _get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_auth(db_session) -> dict:
    """Organization "Acme" with its ADMIN; returns the login payload."""
    return auth_service.register_organization(
        db_session,
        organization_name="Acme",
        email="admin@acme.com",
        password="secret123",
        name="Ada Admin",
    )


@pytest.fixture
def admin_headers(admin_auth) -> dict:
    return auth_headers(admin_auth["access_token"])


@pytest.fixture
def make_product(db_session):
    def _make(organization_id: int, *, stock: int = 0, minimum: int = 0, sku: str = "SKU-1", **extra) -> Product:
        category = db_session.query(Category).filter_by(organization_id=organization_id, name="General").first()
        if not category:
            category = Category(organization_id=organization_id, name="General")
            db_session.add(category)
            db_session.flush()
        product = Product(
            organization_id=organization_id,
            category_id=category.id,
            name=extra.pop("name", f"Product {sku}"),
            sku=sku,
            cost_price=extra.pop("cost_price", Decimal("2.50")),
            selling_price=extra.pop("selling_price", Decimal("5.00")),
            current_stock=stock,
            minimum_stock=minimum,
            **extra,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make
