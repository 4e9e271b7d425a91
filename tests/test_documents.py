import uuid

import pytest

from conftest import auth_headers, make_recruiter
from marketplace.core.config import settings
from marketplace.db.models.provider_profile import ProviderDocument
from marketplace.db.models.recruiter import RecruiterEvent
from marketplace.services.provider_documents import (
    ProviderDocumentInput,
    delete_document,
    insert_documents,
    list_documents,
)


@pytest.fixture
def onboarded(client, db):
    user, recruiter = make_recruiter(db, "rec@example.com")
    headers = auth_headers(user, ["recruiter"])
    res = client.post("/api/offline/providers", json={
        "fullName": "Nora Nails",
        "email": "nora@example.com",
        "phone": "5550102030",
        "serviceCategory": "Carpenter",
        "city": "Austin",
    }, headers=headers)
    assert res.status_code == 201
    return headers, recruiter, res.json()["data"]["provider"]["id"]


def test_upload_stores_file_under_provider_folder(client, db, uploads_dir, onboarded):
    headers, recruiter, provider_id = onboarded
    res = client.post(
        f"/api/offline/providers/{provider_id}/documents/upload",
        files={"file": ("license.pdf", b"%PDF-1.4 test", "application/pdf")},
        data={"documentType": "license"},
        headers=headers,
    )
    assert res.status_code == 201
    document = res.json()["data"]
    assert document["documentType"] == "license"
    assert document["storageKey"].startswith(f"providers/{provider_id}/documents/")
    assert document["storageKey"].endswith(".pdf")
    assert document["fileUrl"] == f"/uploads/{document['storageKey']}"
    assert document["fileSize"] == len(b"%PDF-1.4 test")
    assert document["mimeType"] == "application/pdf"
    assert document["uploadedBy"] == str(recruiter.id)

    stored = uploads_dir.joinpath(*document["storageKey"].split("/"))
    assert stored.read_bytes() == b"%PDF-1.4 test"

    event = db.query(RecruiterEvent).filter(RecruiterEvent.event_type == "provider_document_uploaded").one()
    assert event.event_metadata == {
        "providerId": provider_id,
        "documentId": document["id"],
        "documentType": "license",
    }


def test_upload_requires_file(client, onboarded):
    headers, _, provider_id = onboarded
    res = client.post(
        f"/api/offline/providers/{provider_id}/documents/upload",
        data={"documentType": "license"},
        headers=headers,
    )
    assert res.status_code == 400
    assert res.json()["code"] == "FILE_REQUIRED"


def test_upload_requires_document_type(client, onboarded):
    headers, _, provider_id = onboarded
    res = client.post(
        f"/api/offline/providers/{provider_id}/documents/upload",
        files={"file": ("id.png", b"png", "image/png")},
        headers=headers,
    )
    assert res.status_code == 400
    assert res.json()["code"] == "VALIDATION_ERROR"


def test_upload_too_large(client, onboarded, monkeypatch):
    headers, _, provider_id = onboarded
    monkeypatch.setattr(settings, "UPLOAD_MAX_FILE_MB", 0)
    res = client.post(
        f"/api/offline/providers/{provider_id}/documents/upload",
        files={"file": ("big.bin", b"x" * 10, "application/octet-stream")},
        data={"documentType": "other"},
        headers=headers,
    )
    assert res.status_code == 413
    assert res.json()["code"] == "FILE_TOO_LARGE"


def test_upload_unknown_provider(client, onboarded):
    headers, _, _ = onboarded
    res = client.post(
        f"/api/offline/providers/{uuid.uuid4()}/documents/upload",
        files={"file": ("a.pdf", b"a", "application/pdf")},
        data={"documentType": "license"},
        headers=headers,
    )
    assert res.status_code == 404
    assert res.json()["code"] == "PROVIDER_NOT_FOUND"


def test_admin_upload_has_no_uploader(client, db, admin_headers, onboarded):
    _, _, provider_id = onboarded
    res = client.post(
        f"/api/offline/providers/{provider_id}/documents/upload",
        files={"file": ("a.pdf", b"a", "application/pdf")},
        data={"documentType": "license"},
        headers=admin_headers,
    )
    assert res.status_code == 201
    assert res.json()["data"]["uploadedBy"] is None
    assert db.query(RecruiterEvent).filter(RecruiterEvent.event_type == "provider_document_uploaded").count() == 0


def test_attach_documents(client, onboarded):
    headers, recruiter, provider_id = onboarded
    res = client.post(
        f"/api/offline/providers/{provider_id}/documents",
        json={"documents": [{"documentType": "portfolio", "fileUrl": "https://cdn.example.com/p.jpg", "fileSize": 10}]},
        headers=headers,
    )
    assert res.status_code == 201
    documents = res.json()["data"]
    assert len(documents) == 1
    assert documents[0]["uploadedBy"] == str(recruiter.id)

    res = client.post(f"/api/offline/providers/{provider_id}/documents", json={"documents": []}, headers=headers)
    assert res.status_code == 400


def test_delete_uploaded_document_removes_file(client, db, uploads_dir, onboarded):
    headers, _, provider_id = onboarded
    document = client.post(
        f"/api/offline/providers/{provider_id}/documents/upload",
        files={"file": ("id.png", b"png-bytes", "image/png")},
        data={"documentType": "id"},
        headers=headers,
    ).json()["data"]
    stored = uploads_dir.joinpath(*document["storageKey"].split("/"))
    assert stored.exists()

    res = client.delete(f"/api/offline/providers/{provider_id}/documents/{document['id']}", headers=headers)
    assert res.status_code == 200
    assert res.json()["data"] == {"id": document["id"]}
    assert not stored.exists()

    res = client.get(f"/api/offline/providers/{provider_id}", headers=headers)
    assert res.json()["data"]["documents"] == []

    res = client.delete(f"/api/offline/providers/{provider_id}/documents/{document['id']}", headers=headers)
    assert res.status_code == 404
    assert res.json()["code"] == "DOCUMENT_NOT_FOUND"


def test_delete_is_scoped_to_provider(client, db, onboarded):
    headers, _, provider_id = onboarded
    document = client.post(
        f"/api/offline/providers/{provider_id}/documents",
        json={"documents": [{"documentType": "id", "fileUrl": "https://cdn.example.com/id.jpg"}]},
        headers=headers,
    ).json()["data"][0]

    res = client.delete(f"/api/offline/providers/{uuid.uuid4()}/documents/{document['id']}", headers=headers)
    assert res.status_code == 404
    assert db.query(ProviderDocument).count() == 1


def test_document_service(db, onboarded):
    _, _, provider_id = onboarded
    provider_id = uuid.UUID(provider_id)
    assert insert_documents(db, []) == []

    rows = insert_documents(db, [
        ProviderDocumentInput(provider_id=provider_id, document_type="id", file_url="https://x.com/1"),
        ProviderDocumentInput(provider_id=provider_id, document_type="license", file_url="https://x.com/2"),
    ])
    db.commit()
    assert len(list_documents(db, provider_id)) == 2

    assert delete_document(db, uuid.uuid4(), rows[0].id) is None
    assert delete_document(db, provider_id, rows[0].id).id == rows[0].id
    db.commit()
    assert [d.document_type for d in list_documents(db, provider_id)] == ["license"]
