import uuid
from datetime import timedelta

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from jose import jwt

from marketplace.core import security
from marketplace.core.config import settings
from marketplace.core.errors import ApiError, register_exception_handlers
from marketplace.core.security import (
    TokenIdentity,
    create_access_token,
    decode_access_token,
    hash_password,
    require_all_roles,
    require_any_role,
    require_owner_or_admin,
    verify_password,
)


@pytest.fixture
def guarded_client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/any")
    def any_role(identity: TokenIdentity = Depends(require_any_role("recruiter", "administrator"))):
        return {"userId": str(identity.user_id)}

    @app.get("/all")
    def all_roles(identity: TokenIdentity = Depends(require_all_roles("provider", "customer"))):
        return {"ok": True}

    @app.get("/users/{user_id}")
    def owned(user_id: uuid.UUID, identity: TokenIdentity = Depends(require_owner_or_admin)):
        return {"ok": True}

    return TestClient(app)


def _bearer(user_id, roles, **kwargs):
    return {"Authorization": f"Bearer {create_access_token(user_id, roles, **kwargs)}"}


def test_password_hash_roundtrip():
    hashed = hash_password("Password1")
    assert hashed != "Password1"
    assert verify_password("Password1", hashed)
    assert not verify_password("Password2", hashed)


def test_token_carries_user_and_roles():
    user_id = uuid.uuid4()
    identity = decode_access_token(create_access_token(user_id, ["customer", "provider"]))
    assert identity.user_id == user_id
    assert identity.roles == ["customer", "provider"]
    assert not identity.is_admin


def test_token_without_secret_fails(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", "")
    with pytest.raises(RuntimeError):
        create_access_token(uuid.uuid4(), ["customer"])


def test_expired_token():
    token = create_access_token(uuid.uuid4(), ["customer"], expires_delta=timedelta(seconds=-10))
    with pytest.raises(ApiError) as info:
        decode_access_token(token)
    assert info.value.status_code == 401
    assert info.value.code == "TOKEN_EXPIRED"


def test_token_signed_with_other_secret():
    token = jwt.encode({"userId": str(uuid.uuid4()), "roles": []}, "another-secret", algorithm="HS256")
    with pytest.raises(ApiError) as info:
        decode_access_token(token)
    assert info.value.code == "INVALID_TOKEN"


def test_token_with_bad_user_id():
    token = jwt.encode({"userId": "not-a-uuid", "roles": []}, settings.JWT_SECRET, algorithm="HS256")
    with pytest.raises(ApiError) as info:
        decode_access_token(token)
    assert info.value.code == "INVALID_TOKEN"


def test_any_role_guard(guarded_client):
    user_id = uuid.uuid4()
    assert guarded_client.get("/any", headers=_bearer(user_id, ["recruiter"])).status_code == 200

    res = guarded_client.get("/any", headers=_bearer(user_id, ["customer"]))
    assert res.status_code == 403
    assert res.json()["code"] == "INSUFFICIENT_PERMISSIONS"
    assert res.json()["message"] == "Access denied. Required roles: recruiter or administrator"


def test_any_role_guard_expired(guarded_client):
    headers = _bearer(uuid.uuid4(), ["recruiter"], expires_delta=timedelta(seconds=-10))
    res = guarded_client.get("/any", headers=headers)
    assert res.status_code == 401
    assert res.json()["code"] == "TOKEN_EXPIRED"


def test_all_roles_guard(guarded_client):
    user_id = uuid.uuid4()
    assert guarded_client.get("/all", headers=_bearer(user_id, ["customer", "provider"])).status_code == 200
    assert guarded_client.get("/all", headers=_bearer(user_id, ["provider"])).status_code == 403


def test_owner_or_admin_guard(guarded_client):
    owner = uuid.uuid4()
    other = uuid.uuid4()
    assert guarded_client.get(f"/users/{owner}", headers=_bearer(owner, ["customer"])).status_code == 200
    assert guarded_client.get(f"/users/{owner}", headers=_bearer(other, ["administrator"])).status_code == 200

    res = guarded_client.get(f"/users/{owner}", headers=_bearer(other, ["customer"]))
    assert res.status_code == 403
    assert res.json()["message"] == "Access denied. You can only access your own resources"


def test_missing_bearer(guarded_client):
    res = guarded_client.get("/any")
    assert res.status_code == 401
    assert res.json()["code"] == "UNAUTHENTICATED"
    assert security.bearer_scheme.auto_error is False
