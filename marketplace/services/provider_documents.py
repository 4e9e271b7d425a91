# marketplace/services/provider_documents.py
import uuid
from datetime import datetime
from typing import List, Optional, Sequence

from pydantic import BaseModel
from sqlalchemy.orm import Session

from marketplace.db.models.provider_profile import ProviderDocument


class ProviderDocumentInput(BaseModel):
    provider_id: uuid.UUID
    document_type: str
    file_url: str
    storage_key: Optional[str] = None
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    uploaded_by: Optional[uuid.UUID] = None


def insert_documents(db: Session, documents: Sequence[ProviderDocumentInput]) -> List[ProviderDocument]:
    if not documents:
        return []

    now = datetime.utcnow()
    rows = [ProviderDocument(id=uuid.uuid4(), created_at=now, **doc.model_dump()) for doc in documents]
    db.add_all(rows)
    db.flush()
    return rows


def list_documents(db: Session, provider_id) -> List[ProviderDocument]:
    return (
        db.query(ProviderDocument)
        .filter(ProviderDocument.provider_id == provider_id)
        .order_by(ProviderDocument.created_at.desc())
        .all()
    )


def delete_document(db: Session, provider_id, document_id) -> Optional[ProviderDocument]:
    """Delete a document only when it belongs to ``provider_id``; returns the removed row."""
    document = (
        db.query(ProviderDocument)
        .filter(
            ProviderDocument.id == document_id,
            ProviderDocument.provider_id == provider_id,
        )
        .first()
    )
    if not document:
        return None

    db.delete(document)
    db.flush()
    return document
