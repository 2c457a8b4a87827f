from pydantic import BaseModel
from typing import Any, Dict, Literal, Optional

class Actor(BaseModel):
    role: str  # seller|buyer|admin
    user_id: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

class PropertyCreate(BaseModel):
    address_line1: str
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    county: Optional[str] = None
    property_type: Optional[str] = None
    year_built: Optional[int] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    sqft: Optional[int] = None
    lot_size: Optional[float] = None
    flood_zone: Optional[str] = None
    flood_zone_data: Optional[dict] = None
    mud_district: Optional[str] = None
    mud_annual_fee: Optional[float] = None
    school_district: Optional[str] = None
    property_taxes: Optional[float] = None
    seller_id: Optional[str] = None  # admins only; sellers always own what they create

class DocumentUpdate(BaseModel):
    sections: Dict[str, Any]

class SignatureCreate(BaseModel):
    slot: str
    signature_data: str
    printed_name: str

class AttachmentCreate(BaseModel):
    name: str
    type: Literal["inspection_report", "hoa_document", "survey", "title_document", "warranty", "permit", "other"]
    url: str
    size: int = 0

class ShareCreate(BaseModel):
    recipient_email: str
    recipient_name: Optional[str] = None
    recipient_user_id: Optional[str] = None
    message: Optional[str] = None
