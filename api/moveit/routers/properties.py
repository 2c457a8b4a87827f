from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import select
from ..auth import require_seller_or_admin
from ..models import Property
from ..schemas import Actor, PropertyCreate
from ..store import PartialFormStore
from .common import get_store

router = APIRouter()

@router.post("", status_code=status.HTTP_201_CREATED)
def create_property(
    payload: PropertyCreate,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    data = payload.model_dump(exclude={"seller_id"})
    if actor.is_admin:
        if not payload.seller_id:
            raise HTTPException(400, "seller_id is required for administrators")
        seller_id = payload.seller_id
    else:
        seller_id = actor.user_id
    prop = Property(seller_id=seller_id, **data)
    store.session.add(prop)
    store.session.commit()
    store.session.refresh(prop)
    return prop

@router.get("")
def list_properties(
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    stmt = select(Property).order_by(Property.created_at.desc())
    if not actor.is_admin:
        stmt = stmt.where(Property.seller_id == actor.user_id)
    return store.session.exec(stmt).all()

@router.get("/{property_id}")
def get_property(
    property_id: str,
    store: PartialFormStore = Depends(get_store),
    actor: Actor = Depends(require_seller_or_admin),
):
    prop = store.session.get(Property, property_id)
    if not prop or (not actor.is_admin and prop.seller_id != actor.user_id):
        raise HTTPException(404, "property not found")
    return prop
