from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, HTTPException, Request
from itsdangerous import BadSignature
from sqlmodel import or_, select
from ..analytics import track_event
from ..auth import require_buyer, require_seller_or_admin
from ..config import SHARE_TTL_DAYS, WEB_BASE_URL
from ..errors import IncompleteForm, NotAuthorized
from ..forms import FORMS, FormType, validate_values
from ..models import DisclosureShare
from ..schemas import Actor, ShareCreate
from ..store import PartialFormStore
from ..utils import make_token, new_id, read_token
from .common import client_info, get_store, sa_to_dict, serialize_document

router = APIRouter()

DISCLOSURE = FormType.DISCLOSURE

def _serialize_share(share: DisclosureShare):
    data = sa_to_dict(share)
    data.pop("access_token", None)
    return data

def _recipient_share(store: PartialFormStore, share_id: str, actor: Actor) -> DisclosureShare:
    share = store.session.exec(
        select(DisclosureShare).where(
            DisclosureShare.id == share_id,
            or_(
                DisclosureShare.recipient_user_id == actor.user_id,
                DisclosureShare.recipient_email == (actor.email or ""),
            ),
        )
    ).first()
    if not share:
        raise HTTPException(404, "shared disclosure not found")
    return share

@router.post("/disclosures/{document_id}/share", status_code=201)
def share_disclosure(
    document_id: str,
    payload: ShareCreate,
    request: Request,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    doc = store.get(DISCLOSURE, document_id, actor)
    if actor.user_id != doc.seller_id:
        raise NotAuthorized("only the owning seller may share a disclosure")
    if doc.status == FORMS[DISCLOSURE].empty_status:
        result = validate_values(FORMS[DISCLOSURE], FORMS[DISCLOSURE].values_of(doc))
        raise IncompleteForm(
            "complete more of the disclosure before sharing",
            missing_sections=result.missing_sections,
        )
    share_id = new_id()
    token = make_token({"share_id": share_id, "disclosure_id": doc.id}, salt="share")
    share = DisclosureShare(
        id=share_id,
        disclosure_id=doc.id,
        recipient_email=payload.recipient_email.strip().lower(),
        recipient_name=payload.recipient_name,
        recipient_user_id=payload.recipient_user_id,
        shared_by=actor.user_id,
        message=payload.message,
        access_token=token,
        expires_at=datetime.utcnow() + timedelta(days=SHARE_TTL_DAYS),
    )
    store.session.add(share)
    store.session.commit()
    store.session.refresh(share)
    response = {
        "share_id": share.id,
        "sent_to": share.recipient_email,
        "access_token": token,
        "view_url": f"{WEB_BASE_URL}/buyer/disclosure/{token}",
        "expires_at": share.expires_at,
    }
    ip, ua = client_info(request)
    track_event(store.session, doc.id, "shared", user_id=actor.user_id,
                meta={"share_id": share.id, "recipient_email": share.recipient_email}, ip=ip, ua=ua)
    return response

@router.get("/shares/view/{token}")
def view_shared_disclosure(token: str, request: Request, store: PartialFormStore = Depends(get_store)):
    try:
        data = read_token(token, salt="share")
    except BadSignature:
        raise HTTPException(404, "shared disclosure not found")
    share = store.session.get(DisclosureShare, data.get("share_id"))
    if not share or share.access_token != token:
        raise HTTPException(404, "shared disclosure not found")
    now = datetime.utcnow()
    if share.expires_at and share.expires_at < now:
        raise HTTPException(410, "this share link has expired")
    share.view_count += 1
    share.last_viewed_at = now
    if not share.first_viewed_at:
        share.first_viewed_at = now
    if share.status == "pending":
        share.status = "viewed"
    share.updated_at = now
    store.session.add(share)
    store.session.commit()
    doc = store.get(DISCLOSURE, share.disclosure_id)
    response = {"share": _serialize_share(share), **serialize_document(store, DISCLOSURE, doc)}
    ip, ua = client_info(request)
    track_event(store.session, doc.id, "share_viewed", user_id=share.recipient_user_id,
                meta={"share_id": share.id}, ip=ip, ua=ua)
    return response

@router.get("/shares/mine")
def list_my_shares(
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_buyer),
):
    shares = store.session.exec(
        select(DisclosureShare)
        .where(
            or_(
                DisclosureShare.recipient_user_id == actor.user_id,
                DisclosureShare.recipient_email == (actor.email or ""),
            )
        )
        .order_by(DisclosureShare.created_at.desc())
    ).all()
    return [_serialize_share(s) for s in shares]

@router.post("/shares/{share_id}/acknowledge")
def acknowledge_share(
    share_id: str,
    request: Request,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_buyer),
):
    share = _recipient_share(store, share_id, actor)
    if share.status in ("acknowledged", "signed"):
        raise HTTPException(400, "disclosure has already been acknowledged")
    now = datetime.utcnow()
    share.status = "acknowledged"
    share.acknowledged_at = now
    share.updated_at = now
    if not share.recipient_user_id:
        share.recipient_user_id = actor.user_id
    store.session.add(share)
    store.session.commit()
    store.session.refresh(share)
    response = {"message": "Disclosure acknowledged", "share": _serialize_share(share)}
    ip, ua = client_info(request)
    track_event(store.session, share.disclosure_id, "share_acknowledged", user_id=actor.user_id,
                meta={"share_id": share.id}, ip=ip, ua=ua)
    return response
