from fastapi import Depends, HTTPException, Request
from sqlalchemy.inspection import inspect as sa_inspect
from sqlmodel import Session

from ..db import get_session
from ..errors import NotFound
from ..forms import FormType
from ..models import Property
from ..store import PartialFormStore


def get_store(session: Session = Depends(get_session)) -> PartialFormStore:
    return PartialFormStore(session)


def sa_to_dict(obj):
    if obj is None:
        return {}
    mapper = sa_inspect(obj).mapper
    data = {}
    for col in mapper.column_attrs:
        data[col.key] = getattr(obj, col.key)
    return data


def serialize_document(store: PartialFormStore, form_type: FormType, doc) -> dict:
    data = sa_to_dict(doc)
    data.pop("version", None)
    data.pop("property_key", None)
    return {
        "form_type": form_type.value,
        "document": data,
        "completion": doc.completion_percentage,
        "sections_summary": store.summary(form_type, doc),
    }


def client_info(request: Request):
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


def resolve_owner(store: PartialFormStore, actor, property_id=None, seller_id=None):
    """Sellers always act for themselves; administrators name the seller or inherit the property's."""
    if not actor.is_admin:
        return actor.user_id
    if seller_id:
        return seller_id
    prop = store.session.get(Property, property_id) if property_id else None
    if property_id and not prop:
        raise NotFound(f"property {property_id} not found")
    if not prop:
        raise HTTPException(400, "seller_id is required for administrators")
    return prop.seller_id
