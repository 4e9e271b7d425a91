import os

os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["STORAGE_DRIVER"] = "local"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from marketplace.core.config import settings
from marketplace.core.security import create_access_token, hash_password
from marketplace.db.base import Base, build_engine, get_db
from marketplace.db.models.recruiter import Recruiter
from marketplace.db.models.user import ROLE_DESCRIPTIONS, User
from marketplace.main import app
from marketplace.services.provider_profiles import ensure_role, ensure_user_has_role

PASSWORD = "Password1"


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'marketplace.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def uploads_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "LOCAL_UPLOADS_DIR", str(path))
    monkeypatch.setattr(settings, "STORAGE_DRIVER", "local")
    monkeypatch.setattr(settings, "STORAGE_PUBLIC_URL", None)
    return path


@pytest.fixture
def client(session_factory, uploads_dir):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, email, roles=(), password=PASSWORD, first_name="Test", last_name="User"):
    user = User(
        email=email.lower(),
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
    )
    db.add(user)
    db.flush()
    for role in roles:
        ensure_user_has_role(db, user.id, ensure_role(db, role, ROLE_DESCRIPTIONS.get(role)))
    db.commit()
    db.refresh(user)
    return user


def make_recruiter(db, email, status="active", city="Austin", first_name="Rita", last_name="Recruiter"):
    user = make_user(db, email, roles=("recruiter",), first_name=first_name, last_name=last_name)
    recruiter = Recruiter(user_id=user.id, phone="5550001111", city=city, status=status)
    db.add(recruiter)
    db.commit()
    db.refresh(recruiter)
    return user, recruiter


def auth_headers(user, roles):
    return {"Authorization": f"Bearer {create_access_token(user.id, list(roles))}"}


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", roles=("administrator",), first_name="Ada", last_name="Admin")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin, ["administrator"])
