import logging
from collections import Counter
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .models import AnalyticsEvent

logger = logging.getLogger(__name__)


def track_event(
    session: Session,
    document_id: str,
    event_type: str,
    form_type: str = "disclosure",
    user_id: Optional[str] = None,
    meta: Optional[dict] = None,
    ip: Optional[str] = None,
    ua: Optional[str] = None,
):
    """Record an analytics event. Failures are logged and never reach the caller."""
    event = AnalyticsEvent(
        document_id=document_id,
        form_type=form_type,
        event_type=event_type,
        user_id=user_id,
        meta=meta or {},
        ip_address=ip,
        user_agent=(ua or "")[:500] or None,
    )
    try:
        session.add(event)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("dropped analytics event %s for %s", event_type, document_id)
        return None
    return event


def document_summary(session: Session, document_id: str) -> dict:
    events = session.exec(
        select(AnalyticsEvent)
        .where(AnalyticsEvent.document_id == document_id)
        .order_by(AnalyticsEvent.event_timestamp)
    ).all()
    by_type = Counter(e.event_type for e in events)
    views = [e.event_timestamp for e in events if e.event_type == "share_viewed"]
    return {
        "document_id": document_id,
        "total_events": len(events),
        "events_by_type": dict(by_type),
        "share_count": by_type.get("shared", 0),
        "view_count": by_type.get("share_viewed", 0),
        "last_viewed_at": max(views) if views else None,
        "last_event_at": events[-1].event_timestamp if events else None,
    }
