from typing import Optional
from fastapi import Depends, Header, HTTPException, Query, status
from itsdangerous import BadSignature

from .config import ADMIN_ACCESS_TOKEN
from .schemas import Actor
from .utils import read_token

USER_ROLES = ("seller", "buyer")


def resolve_actor(
    x_access_token: Optional[str] = Header(default=None, alias="X-Access-Token"),
    token: Optional[str] = Query(default=None),
) -> Actor:
    candidate = x_access_token or token
    if not candidate:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing access token")
    if ADMIN_ACCESS_TOKEN and candidate == ADMIN_ACCESS_TOKEN:
        return Actor(role="admin")
    try:
        data = read_token(candidate)
    except BadSignature:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid access token")
    if not isinstance(data, dict) or data.get("role") not in USER_ROLES or not data.get("user_id"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid access token")
    email = data.get("email")
    return Actor(role=data["role"], user_id=str(data["user_id"]), email=email.lower() if email else None)


def require_seller_or_admin(actor: Actor = Depends(resolve_actor)) -> Actor:
    if actor.role not in ("seller", "admin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Seller access required")
    return actor


def require_buyer(actor: Actor = Depends(resolve_actor)) -> Actor:
    if actor.role != "buyer":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Buyer access required")
    return actor
