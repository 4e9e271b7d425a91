# marketplace/services/recruiter_events.py
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from marketplace.db.models.recruiter import RecruiterEvent

logger = logging.getLogger(__name__)

RECRUITER_REGISTERED = "recruiter_registered"
PROFILE_UPDATED = "profile_updated"
STATUS_UPDATED = "status_updated"
PROVIDER_ONBOARDED = "provider_onboarded"
PROVIDER_DOCUMENT_UPLOADED = "provider_document_uploaded"


def log_recruiter_event(
    db: Session, recruiter_id, event_type: str, metadata: Optional[Dict[str, Any]] = None
) -> RecruiterEvent:
    event = RecruiterEvent(
        recruiter_id=recruiter_id,
        event_type=event_type,
        event_metadata=metadata or {},
        created_at=datetime.utcnow(),
    )
    db.add(event)
    db.flush()
    logger.info(f"Recruiter {recruiter_id} event {event_type}")
    return event
