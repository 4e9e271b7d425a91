from decimal import Decimal

from fastapi.testclient import TestClient

from conftest import auth_headers, make_recruiter, make_user
from marketplace.core.security import verify_password
from marketplace.db.models.category import Category
from marketplace.db.models.provider_profile import ProviderDocument, ProviderProfile
from marketplace.db.models.recruiter import RecruiterEvent
from marketplace.db.models.user import User, user_roles
from marketplace.main import app
from marketplace.services import provider_profiles, recruiter_events
from marketplace.services.users import get_role_names

PROVIDER = {
    "fullName": "Carlos Mendez",
    "email": "Carlos@Example.com",
    "phone": "5559876543",
    "serviceCategory": "Electrician",
    "city": "Austin",
    "pricePerHour": 55,
    "bio": "Licensed electrician",
}


def onboard(client, headers, **overrides):
    return client.post("/api/offline/providers", json={**PROVIDER, **overrides}, headers=headers)


def test_recruiter_onboards_new_provider(client, db):
    user, recruiter = make_recruiter(db, "rec@example.com")
    res = onboard(client, auth_headers(user, ["recruiter"]))
    assert res.status_code == 201
    data = res.json()["data"]

    provider = data["provider"]
    assert provider["status"] == "pending"
    assert provider["onboardedBy"] == str(recruiter.id)
    assert provider["businessName"] == "Carlos Mendez Electrician Services"
    assert provider["serviceTitle"] == "Electrician"
    assert provider["locationString"] == "Austin"
    assert provider["contactPhone"] == "5559876543"
    assert provider["description"] == "Licensed electrician"
    assert data["user"]["email"] == "carlos@example.com"
    assert data["user"]["firstName"] == "Carlos"
    assert data["user"]["lastName"] == "Mendez"

    temporary_password = data["temporaryPassword"]
    assert len(temporary_password) == 12

    new_user = db.query(User).filter(User.email == "carlos@example.com").one()
    assert verify_password(temporary_password, new_user.password_hash)
    assert get_role_names(db, new_user.id) == ["provider"]
    assert db.query(user_roles).filter(user_roles.c.user_id == new_user.id).count() == 1
    assert db.query(ProviderProfile).filter(ProviderProfile.user_id == new_user.id).count() == 1

    category = db.query(Category).filter(Category.name == "Electrician").one()
    assert provider["categoryId"] == category.id

    event = db.query(RecruiterEvent).filter(RecruiterEvent.event_type == "provider_onboarded").one()
    assert event.recruiter_id == recruiter.id
    assert event.event_metadata == {"providerId": provider["id"], "serviceCategory": "Electrician"}


def test_onboarding_failure_leaves_nothing_behind(client, db, monkeypatch):
    user, _ = make_recruiter(db, "rec@example.com")
    role_rows = db.query(user_roles).count()

    def fail(*args, **kwargs):
        raise RuntimeError("event store unavailable")

    monkeypatch.setattr(recruiter_events, "log_recruiter_event", fail)
    res = TestClient(app, raise_server_exceptions=False).post(
        "/api/offline/providers", json=PROVIDER, headers=auth_headers(user, ["recruiter"])
    )
    assert res.status_code == 500
    assert res.json()["code"] == "INTERNAL_ERROR"

    assert db.query(User).filter(User.email == "carlos@example.com").count() == 0
    assert db.query(ProviderProfile).count() == 0
    assert db.query(user_roles).count() == role_rows
    assert db.query(Category).filter(Category.name == "Electrician").count() == 0


def test_onboarding_existing_user_keeps_password(client, db):
    user, _ = make_recruiter(db, "rec@example.com")
    existing = make_user(db, "carlos@example.com", roles=("customer",))

    res = onboard(client, auth_headers(user, ["recruiter"]))
    assert res.status_code == 201
    assert res.json()["data"]["temporaryPassword"] is None
    assert res.json()["data"]["user"]["id"] == str(existing.id)
    assert sorted(get_role_names(db, existing.id)) == ["customer", "provider"]


def test_onboarding_twice_conflicts(client, db):
    user, _ = make_recruiter(db, "rec@example.com")
    headers = auth_headers(user, ["recruiter"])
    assert onboard(client, headers).status_code == 201

    res = onboard(client, headers)
    assert res.status_code == 409
    assert res.json()["code"] == "PROVIDER_EXISTS"
    assert db.query(ProviderProfile).count() == 1


def test_onboarding_with_documents(client, db):
    user, recruiter = make_recruiter(db, "rec@example.com")
    documents = [
        {"documentType": "license", "fileUrl": "https://files.example.com/license.pdf", "fileName": "license.pdf"},
        {"documentType": "id", "fileUrl": "https://files.example.com/id.png"},
    ]
    res = onboard(client, auth_headers(user, ["recruiter"]), documents=documents)
    assert res.status_code == 201

    rows = db.query(ProviderDocument).all()
    assert sorted(d.document_type for d in rows) == ["id", "license"]
    assert all(d.uploaded_by == recruiter.id for d in rows)
    assert all(d.storage_key is None for d in rows)


def test_onboarding_rejects_bad_document_url(client, db):
    user, _ = make_recruiter(db, "rec@example.com")
    documents = [{"documentType": "license", "fileUrl": "ftp://nope"}]
    res = onboard(client, auth_headers(user, ["recruiter"]), documents=documents)
    assert res.status_code == 400
    assert db.query(User).filter(User.email == "carlos@example.com").first() is None


def test_admin_must_name_recruiter(client, db, admin_headers):
    res = onboard(client, admin_headers)
    assert res.status_code == 400
    assert res.json()["code"] == "RECRUITER_ID_REQUIRED"

    res = onboard(client, admin_headers, recruiterId="00000000-0000-0000-0000-000000000000")
    assert res.status_code == 400
    assert res.json()["code"] == "RECRUITER_NOT_FOUND"

    _, recruiter = make_recruiter(db, "rec@example.com")
    res = onboard(client, admin_headers, recruiterId=str(recruiter.id))
    assert res.status_code == 201
    assert res.json()["data"]["provider"]["onboardedBy"] == str(recruiter.id)


def test_recruiter_role_without_profile(client, db):
    user = make_user(db, "lonely@example.com", roles=("recruiter",))
    res = onboard(client, auth_headers(user, ["recruiter"]))
    assert res.status_code == 400
    assert res.json()["code"] == "RECRUITER_PROFILE_NOT_FOUND"


def test_customer_cannot_onboard(client, db):
    user = make_user(db, "cust@example.com", roles=("customer",))
    res = onboard(client, auth_headers(user, ["customer"]))
    assert res.status_code == 403


def test_list_providers_with_filters(client, db, admin_headers):
    rec_user, recruiter = make_recruiter(db, "rec@example.com", first_name="Rita")
    headers = auth_headers(rec_user, ["recruiter"])
    onboard(client, headers)
    onboard(client, headers, fullName="Dana Diaz", email="dana@example.com", serviceCategory="Plumber", city="Dallas")
    dana_id = client.get(
        "/api/offline/providers", params={"search": "dana"}, headers=headers
    ).json()["data"]["providers"][0]["id"]
    client.patch(f"/api/offline/providers/{dana_id}/status", json={"status": "active"}, headers=admin_headers)

    res = client.get("/api/offline/providers", headers=headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["pagination"] == {"page": 1, "limit": 10, "total": 2, "totalPages": 1}
    assert data["summary"] == {"total": 2, "pending": 1, "active": 1}
    assert data["providers"][0]["recruiter"]["name"] == "Rita Recruiter"

    res = client.get("/api/offline/providers", params={"city": "dal"}, headers=headers)
    providers = res.json()["data"]["providers"]
    assert [p["firstName"] for p in providers] == ["Dana"]
    assert providers[0]["category"] == "Plumber"
    assert providers[0]["email"] == "dana@example.com"

    res = client.get("/api/offline/providers", params={"category": "electric"}, headers=headers)
    assert [p["firstName"] for p in res.json()["data"]["providers"]] == ["Carlos"]

    res = client.get("/api/offline/providers", params={"status": "active"}, headers=headers)
    assert res.json()["data"]["pagination"]["total"] == 1

    res = client.get("/api/offline/providers", params={"recruiterId": str(recruiter.id)}, headers=headers)
    assert res.json()["data"]["pagination"]["total"] == 2


def test_empty_list_has_one_page(client, admin_headers):
    res = client.get("/api/offline/providers", headers=admin_headers)
    assert res.json()["data"]["pagination"]["totalPages"] == 1
    assert res.json()["data"]["providers"] == []


def test_get_provider_detail(client, db):
    user, recruiter = make_recruiter(db, "rec@example.com", first_name="Rita")
    headers = auth_headers(user, ["recruiter"])
    provider_id = onboard(client, headers).json()["data"]["provider"]["id"]

    res = client.get(f"/api/offline/providers/{provider_id}", headers=headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["user"]["email"] == "carlos@example.com"
    assert data["category"]["name"] == "Electrician"
    assert data["documents"] == []
    assert data["recruiter"] == {"id": str(recruiter.id), "name": "Rita Recruiter", "email": "rec@example.com"}

    res = client.get("/api/offline/providers/00000000-0000-0000-0000-000000000000", headers=headers)
    assert res.status_code == 404
    assert res.json()["code"] == "PROVIDER_NOT_FOUND"


def test_recruiter_updates_own_provider(client, db):
    user, _ = make_recruiter(db, "rec@example.com")
    headers = auth_headers(user, ["recruiter"])
    provider_id = onboard(client, headers).json()["data"]["provider"]["id"]

    res = client.patch(
        f"/api/offline/providers/{provider_id}",
        json={"city": "Round Rock", "serviceCategory": "Solar Installer", "pricePerHour": 80, "status": "active"},
        headers=headers,
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["locationString"] == "Round Rock"
    assert data["serviceTitle"] == "Solar Installer"
    assert Decimal(data["pricePerHour"]) == Decimal("80")
    assert data["status"] == "pending"
    assert data["description"] == "Licensed electrician"
    assert db.query(Category).filter(Category.name == "Solar Installer").count() == 1


def test_other_recruiter_cannot_update(client, db):
    owner, _ = make_recruiter(db, "rec@example.com")
    provider_id = onboard(client, auth_headers(owner, ["recruiter"])).json()["data"]["provider"]["id"]

    other, _ = make_recruiter(db, "other@example.com")
    res = client.patch(
        f"/api/offline/providers/{provider_id}", json={"city": "Elsewhere"}, headers=auth_headers(other, ["recruiter"])
    )
    assert res.status_code == 403
    assert res.json()["message"] == "You can only update providers you onboarded"


def test_admin_update_honours_status(client, db, admin_headers):
    owner, _ = make_recruiter(db, "rec@example.com")
    provider_id = onboard(client, auth_headers(owner, ["recruiter"])).json()["data"]["provider"]["id"]

    res = client.patch(
        f"/api/offline/providers/{provider_id}", json={"status": "suspended", "bio": ""}, headers=admin_headers
    )
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "suspended"
    assert res.json()["data"]["description"] is None


def test_status_route_is_admin_only(client, db, admin_headers):
    owner, _ = make_recruiter(db, "rec@example.com")
    headers = auth_headers(owner, ["recruiter"])
    provider_id = onboard(client, headers).json()["data"]["provider"]["id"]

    res = client.patch(f"/api/offline/providers/{provider_id}/status", json={"status": "active"}, headers=headers)
    assert res.status_code == 403

    res = client.patch(f"/api/offline/providers/{provider_id}/status", json={"status": "bogus"}, headers=admin_headers)
    assert res.status_code == 400

    res = client.patch(f"/api/offline/providers/{provider_id}/status", json={"status": "rejected"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "rejected"


def test_failed_status_change_is_rolled_back(client, db, admin_headers, monkeypatch):
    owner, _ = make_recruiter(db, "rec@example.com")
    provider_id = onboard(client, auth_headers(owner, ["recruiter"])).json()["data"]["provider"]["id"]

    real_update = provider_profiles.update_profile

    def update_then_fail(*args, **kwargs):
        real_update(*args, **kwargs)
        raise RuntimeError("write failed")

    monkeypatch.setattr(provider_profiles, "update_profile", update_then_fail)
    res = TestClient(app, raise_server_exceptions=False).patch(
        f"/api/offline/providers/{provider_id}/status", json={"status": "active"}, headers=admin_headers
    )
    assert res.status_code == 500

    db.expire_all()
    assert db.query(ProviderProfile).one().status == "pending"
