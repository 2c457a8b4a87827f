from typing import Any, Optional
from fastapi import APIRouter, Body, Depends, Request, status
from ..analytics import track_event
from ..auth import require_seller_or_admin
from ..forms import FormType
from ..schemas import Actor, DocumentUpdate
from ..store import PartialFormStore
from .common import client_info, get_store, resolve_owner, serialize_document

router = APIRouter()

CHECKLIST = FormType.CHECKLIST

def _track(store: PartialFormStore, request: Request, document_id: str, event_type: str, actor: Actor, meta=None):
    ip, ua = client_info(request)
    track_event(store.session, document_id, event_type, form_type=CHECKLIST.value,
                user_id=actor.user_id, meta=meta, ip=ip, ua=ua)

@router.get("")
def get_or_create_checklist(
    request: Request,
    property_id: Optional[str] = None,
    seller_id: Optional[str] = None,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    # without a property the seller gets their general checklist
    owner_id = resolve_owner(store, actor, property_id, seller_id)
    doc, created = store.get_or_create(CHECKLIST, property_id, owner_id, actor)
    body = serialize_document(store, CHECKLIST, doc)
    body["is_new"] = created
    if created:
        _track(store, request, doc.id, "created", actor, {"property_id": property_id})
    return body

@router.get("/seller")
def list_seller_checklists(
    seller_id: Optional[str] = None,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    owner_id = actor.user_id if not actor.is_admin else resolve_owner(store, actor, seller_id=seller_id)
    docs = store.list_documents(CHECKLIST, owner_id, actor)
    return [serialize_document(store, CHECKLIST, doc) for doc in docs]

@router.get("/{document_id}")
def get_checklist(
    document_id: str,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    doc = store.get(CHECKLIST, document_id, actor)
    return serialize_document(store, CHECKLIST, doc)

@router.patch("/{document_id}/sections/{category}")
def auto_save_category(
    document_id: str,
    category: str,
    request: Request,
    data: Any = Body(default=None),
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    doc, completion = store.auto_save_section(CHECKLIST, document_id, category, data, actor)
    body = serialize_document(store, CHECKLIST, doc)
    body["message"] = "Category saved"
    _track(store, request, document_id, "section_saved", actor, {"section": category, "completion": completion})
    return body

@router.put("/{document_id}")
def update_checklist(
    document_id: str,
    payload: DocumentUpdate,
    request: Request,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    doc = store.update_document(CHECKLIST, document_id, payload.sections, actor)
    body = serialize_document(store, CHECKLIST, doc)
    _track(store, request, document_id, "updated", actor, {"sections": sorted(payload.sections)})
    return body

@router.post("/{document_id}/validate")
def validate_checklist(
    document_id: str,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    result = store.validate(CHECKLIST, document_id, actor)
    return {**result.to_dict(), "can_complete": result.valid}

@router.post("/{document_id}/complete")
def complete_checklist(
    document_id: str,
    request: Request,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    previous = store.get(CHECKLIST, document_id).status
    doc = store.complete_document(CHECKLIST, document_id, actor)
    body = serialize_document(store, CHECKLIST, doc)
    if doc.status != previous:
        _track(store, request, document_id, "completed", actor)
    return body

@router.post("/{document_id}/reopen")
def reopen_checklist(
    document_id: str,
    request: Request,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    previous = store.get(CHECKLIST, document_id).status
    doc = store.reopen_document(CHECKLIST, document_id, actor)
    body = serialize_document(store, CHECKLIST, doc)
    if doc.status != previous:
        _track(store, request, document_id, "reopened", actor, {"from": previous})
    return body

@router.post("/{document_id}/prefill")
def prefill_checklist(
    document_id: str,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    doc = store.prefill_from_property(CHECKLIST, document_id, actor)
    return serialize_document(store, CHECKLIST, doc)

@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_checklist(
    document_id: str,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    store.delete_document(CHECKLIST, document_id, actor)
