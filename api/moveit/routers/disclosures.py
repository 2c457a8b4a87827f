from typing import Any, Optional
from fastapi import APIRouter, Body, Depends, Request
from ..analytics import document_summary, track_event
from ..auth import require_seller_or_admin, resolve_actor
from ..forms import SIGNATURE_SLOTS, FormType
from ..schemas import Actor, AttachmentCreate, DocumentUpdate, SignatureCreate
from ..store import PartialFormStore
from .common import client_info, get_store, resolve_owner, serialize_document

router = APIRouter()

DISCLOSURE = FormType.DISCLOSURE

def _track(store: PartialFormStore, request: Request, document_id: str, event_type: str, actor: Actor, meta=None):
    ip, ua = client_info(request)
    track_event(store.session, document_id, event_type, form_type=DISCLOSURE.value,
                user_id=actor.user_id, meta=meta, ip=ip, ua=ua)

@router.get("/seller")
def list_seller_disclosures(
    seller_id: Optional[str] = None,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    owner_id = actor.user_id if not actor.is_admin else resolve_owner(store, actor, seller_id=seller_id)
    docs = store.list_documents(DISCLOSURE, owner_id, actor)
    return [serialize_document(store, DISCLOSURE, doc) for doc in docs]

@router.get("/property/{property_id}")
def get_or_create_disclosure(
    property_id: str,
    request: Request,
    seller_id: Optional[str] = None,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    owner_id = resolve_owner(store, actor, property_id, seller_id)
    doc, created = store.get_or_create(DISCLOSURE, property_id, owner_id, actor)
    body = serialize_document(store, DISCLOSURE, doc)
    body["is_new"] = created
    if created:
        _track(store, request, doc.id, "created", actor, {"property_id": property_id})
    return body

@router.get("/{document_id}")
def get_disclosure(
    document_id: str,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    doc = store.get(DISCLOSURE, document_id, actor)
    return serialize_document(store, DISCLOSURE, doc)

@router.patch("/{document_id}/sections/{section_key}")
def auto_save_section(
    document_id: str,
    section_key: str,
    request: Request,
    data: Any = Body(default=None),
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    doc, completion = store.auto_save_section(DISCLOSURE, document_id, section_key, data, actor)
    body = serialize_document(store, DISCLOSURE, doc)
    body["message"] = "Section saved"
    _track(store, request, document_id, "section_saved", actor, {"section": section_key, "completion": completion})
    return body

@router.put("/{document_id}")
def update_disclosure(
    document_id: str,
    payload: DocumentUpdate,
    request: Request,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    doc = store.update_document(DISCLOSURE, document_id, payload.sections, actor)
    body = serialize_document(store, DISCLOSURE, doc)
    _track(store, request, document_id, "updated", actor, {"sections": sorted(payload.sections)})
    return body

@router.post("/{document_id}/validate")
def validate_disclosure(
    document_id: str,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    result = store.validate(DISCLOSURE, document_id, actor)
    return {**result.to_dict(), "can_complete": result.valid}

@router.post("/{document_id}/complete")
def complete_disclosure(
    document_id: str,
    request: Request,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    previous = store.get(DISCLOSURE, document_id).status
    doc = store.complete_document(DISCLOSURE, document_id, actor)
    body = serialize_document(store, DISCLOSURE, doc)
    if doc.status != previous:
        _track(store, request, document_id, "completed", actor)
    return body

@router.post("/{document_id}/reopen")
def reopen_disclosure(
    document_id: str,
    request: Request,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    previous = store.get(DISCLOSURE, document_id).status
    doc = store.reopen_document(DISCLOSURE, document_id, actor)
    body = serialize_document(store, DISCLOSURE, doc)
    if doc.status != previous:
        _track(store, request, document_id, "reopened", actor, {"from": previous})
    return body

@router.post("/{document_id}/prefill")
def prefill_disclosure(
    document_id: str,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    doc = store.prefill_from_property(DISCLOSURE, document_id, actor)
    return serialize_document(store, DISCLOSURE, doc)

@router.post("/{document_id}/sign")
def sign_disclosure(
    document_id: str,
    payload: SignatureCreate,
    request: Request,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(resolve_actor),
):
    signature = {"signature_data": payload.signature_data, "printed_name": payload.printed_name}
    doc = store.attach_signature(document_id, payload.slot, signature, actor)
    event = "signed_seller" if SIGNATURE_SLOTS[payload.slot] == "seller" else "signed_buyer"
    response = {"message": "Disclosure signed", "slot": payload.slot, "status": doc.status}
    _track(store, request, document_id, event, actor, {"slot": payload.slot, "printed_name": payload.printed_name})
    return response

@router.post("/{document_id}/attachments", status_code=201)
def add_attachment(
    document_id: str,
    payload: AttachmentCreate,
    request: Request,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    doc, attachment = store.add_attachment(document_id, payload.model_dump(), actor)
    response = {"attachment": attachment, "total_attachments": len(doc.attachments)}
    _track(store, request, document_id, "attachment_added", actor, {"attachment_id": attachment["id"], "type": payload.type})
    return response

@router.delete("/{document_id}/attachments/{attachment_id}")
def remove_attachment(
    document_id: str,
    attachment_id: str,
    request: Request,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    doc = store.remove_attachment(document_id, attachment_id, actor)
    response = {"message": "Attachment removed", "total_attachments": len(doc.attachments)}
    _track(store, request, document_id, "attachment_removed", actor, {"attachment_id": attachment_id})
    return response

@router.get("/{document_id}/analytics")
def disclosure_analytics(
    document_id: str,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    store.get(DISCLOSURE, document_id, actor)
    return document_summary(store.session, document_id)
