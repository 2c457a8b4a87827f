import os

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session, create_engine

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("ADMIN_ACCESS_TOKEN", "admin-test-token")

from moveit.main import app  # noqa: E402
from moveit import db as db_module  # noqa: E402
from moveit.db import get_session  # noqa: E402
from moveit.models import Property  # noqa: E402
from moveit.schemas import Actor  # noqa: E402
from moveit.utils import make_token  # noqa: E402

ADMIN_HEADERS = {"X-Access-Token": os.environ["ADMIN_ACCESS_TOKEN"]}


def seller_headers(user_id="seller-1", email="seller1@example.com"):
    return {"X-Access-Token": make_token({"role": "seller", "user_id": user_id, "email": email})}


def buyer_headers(user_id="buyer-1", email="buyer1@example.com"):
    return {"X-Access-Token": make_token({"role": "buyer", "user_id": user_id, "email": email})}


@pytest.fixture(scope="session")
def test_engine(tmp_path_factory):
    db_path = tmp_path_factory.mktemp("data") / "test.db"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    return engine


@pytest.fixture
def setup_db(test_engine):
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def session(test_engine, setup_db):
    with Session(test_engine) as s:
        yield s


@pytest.fixture
def seller():
    return Actor(role="seller", user_id="seller-1", email="seller1@example.com")


@pytest.fixture
def other_seller():
    return Actor(role="seller", user_id="seller-2", email="seller2@example.com")


@pytest.fixture
def buyer():
    return Actor(role="buyer", user_id="buyer-1", email="buyer1@example.com")


@pytest.fixture
def admin():
    return Actor(role="admin")


@pytest.fixture
def property_row(session):
    prop = Property(
        seller_id="seller-1",
        address_line1="123 Main St",
        city="Houston",
        state="TX",
        zip_code="77002",
        county="Harris",
        property_type="single_family",
        year_built=1965,
        bedrooms=3,
        bathrooms=2,
        sqft=1800,
        lot_size=0.2,
        flood_zone="AE",
        mud_district="Harris County MUD 42",
        mud_annual_fee=650.0,
    )
    session.add(prop)
    session.commit()
    session.refresh(prop)
    return prop


@pytest.fixture
def client(test_engine, setup_db):
    db_module.engine = test_engine

    def override_session():
        with Session(test_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def filled_disclosure_sections():
    """Every required disclosure section answered with nothing that needs explaining."""
    return {
        "section1_property_items": {
            "range": "Y", "oven": "Y", "dishwasher": "Y", "microwave": "N", "garage": "Y",
        },
        "section2_defects": {"foundation": False, "roof": False, "plumbing": False},
        "section3_conditions": {"termites": False, "previous_flooding": False},
        "section4_additional_repairs": False,
        "section5_flood_data": {"flood_zone": "X", "in_100_year_floodplain": False},
        "section6_flood_claim": False,
        "section7_fema_assistance": False,
        "section8_conditions": {"hoa": False, "lawsuits": False},
        "section9_has_reports": False,
        "section10_exemptions": ["homestead"],
        "section11_insurance_claims": False,
        "section12_unremediated_claims": False,
        "section13_smoke_detectors": "yes",
        "utility_providers": {"electric": "CenterPoint"},
    }


def filled_checklist_sections():
    item = {"checked": True, "notes": ""}
    return {
        "property_details": {"property_address": item},
        "hoa_info": {"has_hoa": False},
        "ownership_legal": {"deed_located": item},
        "pricing": {"comps_reviewed": item},
        "property_condition": {"repairs_done": item},
        "photos_marketing": {"photos_taken": item},
        "showings": {"lockbox": item},
        "offers_closing": {"title_company": item},
    }
