from typing import Optional
from datetime import datetime
from sqlalchemy import JSON, Boolean, Column, Index, String, Text
from sqlmodel import SQLModel, Field as ORMField
from .utils import new_id


def _json(**kw):
    return ORMField(sa_column=Column(JSON), **kw)

def _bool():
    return ORMField(default=None, sa_column=Column(Boolean, nullable=True))

def _text():
    return ORMField(default=None, sa_column=Column(Text, nullable=True))


class Property(SQLModel, table=True):
    __tablename__ = "properties"

    id: str = ORMField(default_factory=new_id, primary_key=True)
    seller_id: str = ORMField(index=True)
    address_line1: str = ""
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
    flood_zone_data: Optional[dict] = _json(default=None)
    mud_district: Optional[str] = None
    mud_annual_fee: Optional[float] = None
    school_district: Optional[str] = None
    property_taxes: Optional[float] = None
    created_at: datetime = ORMField(default_factory=datetime.utcnow)

    def full_address(self) -> str:
        parts = [self.address_line1, self.city, " ".join(p for p in (self.state, self.zip_code) if p)]
        return ", ".join(p for p in parts if p)


class SellerDisclosure(SQLModel, table=True):
    __tablename__ = "seller_disclosures"
    __table_args__ = (
        Index("uq_seller_disclosures_property_seller", "property_id", "seller_id", unique=True),
    )

    id: str = ORMField(default_factory=new_id, primary_key=True)
    property_id: str = ORMField(index=True)
    seller_id: str = ORMField(index=True)
    status: str = "draft"  # draft|in_progress|completed|signed
    completion_percentage: int = 0
    version: int = 1

    header_data: Optional[dict] = _json(default_factory=dict)
    section1_property_items: Optional[dict] = _json(default_factory=dict)
    section1_water_supply: Optional[dict] = _json(default_factory=dict)
    section1_roof_info: Optional[dict] = _json(default_factory=dict)
    section1_defects_explanation: Optional[str] = _text()
    section2_defects: Optional[dict] = _json(default_factory=dict)
    section2_explanation: Optional[str] = _text()
    section3_conditions: Optional[dict] = _json(default_factory=dict)
    section3_explanation: Optional[str] = _text()
    section4_additional_repairs: Optional[bool] = _bool()
    section4_explanation: Optional[str] = _text()
    section5_flood_data: Optional[dict] = _json(default_factory=dict)
    section5_explanation: Optional[str] = _text()
    section6_flood_claim: Optional[bool] = _bool()
    section6_explanation: Optional[str] = _text()
    section7_fema_assistance: Optional[bool] = _bool()
    section7_explanation: Optional[str] = _text()
    section8_conditions: Optional[dict] = _json(default_factory=dict)
    section8_hoa_details: Optional[dict] = _json(default_factory=dict)
    section8_common_areas: Optional[dict] = _json(default_factory=dict)
    section8_explanation: Optional[str] = _text()
    section9_has_reports: Optional[bool] = _bool()
    section9_reports: Optional[list] = _json(default_factory=list)
    section10_exemptions: Optional[list] = _json(default_factory=list)
    section11_insurance_claims: Optional[bool] = _bool()
    section12_unremediated_claims: Optional[bool] = _bool()
    section12_explanation: Optional[str] = _text()
    section13_smoke_detectors: Optional[str] = ORMField(default=None, sa_column=Column(String(16), nullable=True))  # yes|no|unknown
    section13_explanation: Optional[str] = _text()
    utility_providers: Optional[dict] = _json(default_factory=dict)

    # {signature_data, printed_name, date, user_id}
    seller1_signature: Optional[dict] = _json(default=None)
    seller2_signature: Optional[dict] = _json(default=None)
    buyer1_signature: Optional[dict] = _json(default=None)
    buyer2_signature: Optional[dict] = _json(default=None)

    attachments: Optional[list] = _json(default_factory=list)

    last_auto_save: Optional[datetime] = None
    created_at: datetime = ORMField(default_factory=datetime.utcnow)
    updated_at: datetime = ORMField(default_factory=datetime.utcnow)


class FSBOChecklist(SQLModel, table=True):
    __tablename__ = "fsbo_checklists"
    __table_args__ = (
        Index("uq_fsbo_checklists_seller_property", "seller_id", "property_key", unique=True),
    )

    id: str = ORMField(default_factory=new_id, primary_key=True)
    property_id: Optional[str] = ORMField(default=None, index=True)
    # property_id or "" for the seller's general checklist; NULLs never collide in a unique index
    property_key: str = ""
    seller_id: str = ORMField(index=True)
    status: str = "not_started"  # not_started|in_progress|completed
    completion_percentage: int = 0
    version: int = 1

    # each category: {item_key: {checked, notes}}
    property_details: Optional[dict] = _json(default_factory=dict)
    hoa_info: Optional[dict] = _json(default_factory=dict)
    ownership_legal: Optional[dict] = _json(default_factory=dict)
    pricing: Optional[dict] = _json(default_factory=dict)
    property_condition: Optional[dict] = _json(default_factory=dict)
    photos_marketing: Optional[dict] = _json(default_factory=dict)
    showings: Optional[dict] = _json(default_factory=dict)
    offers_closing: Optional[dict] = _json(default_factory=dict)

    last_auto_save: Optional[datetime] = None
    created_at: datetime = ORMField(default_factory=datetime.utcnow)
    updated_at: datetime = ORMField(default_factory=datetime.utcnow)


class DisclosureShare(SQLModel, table=True):
    __tablename__ = "shared_disclosures"

    id: str = ORMField(default_factory=new_id, primary_key=True)
    disclosure_id: str = ORMField(index=True)
    recipient_email: str = ORMField(index=True)
    recipient_name: Optional[str] = None
    recipient_user_id: Optional[str] = ORMField(default=None, index=True)
    shared_by: str
    message: Optional[str] = None
    access_token: str = ORMField(default="", index=True)
    status: str = "pending"  # pending|viewed|acknowledged|signed
    view_count: int = 0
    first_viewed_at: Optional[datetime] = None
    last_viewed_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime = ORMField(default_factory=datetime.utcnow)
    updated_at: datetime = ORMField(default_factory=datetime.utcnow)


class AnalyticsEvent(SQLModel, table=True):
    __tablename__ = "disclosure_analytics"

    id: Optional[int] = ORMField(default=None, primary_key=True)
    document_id: str = ORMField(index=True)
    form_type: str = "disclosure"
    event_type: str = ORMField(index=True)
    user_id: Optional[str] = None
    meta: Optional[dict] = ORMField(default_factory=dict, sa_column=Column("metadata", JSON))
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    event_timestamp: datetime = ORMField(default_factory=datetime.utcnow, index=True)
