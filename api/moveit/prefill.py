from .models import Property

FLOODPLAIN_100_YEAR = ("A", "AE", "AO", "AH", "V", "VE")
FLOODPLAIN_500_YEAR = ("X500", "B")


def _merge(current, extra):
    # property data never overwrites what the seller already entered
    merged = dict(extra)
    merged.update(current or {})
    return merged


def disclosure_prefill(prop: Property, values: dict) -> dict:
    header = {
        "property_address": prop.full_address(),
        "city": prop.city,
        "county": prop.county,
        "zip_code": prop.zip_code,
    }
    if prop.school_district:
        header["school_district"] = prop.school_district
    if prop.property_taxes:
        header["estimated_annual_taxes"] = prop.property_taxes

    roof = {}
    if prop.year_built:
        roof["built_before_1978"] = "yes" if prop.year_built < 1978 else "no"
        roof["year_built"] = prop.year_built

    flood = {}
    if prop.flood_zone:
        flood["flood_zone"] = prop.flood_zone
        flood["in_100_year_floodplain"] = prop.flood_zone in FLOODPLAIN_100_YEAR
        flood["in_500_year_floodplain"] = prop.flood_zone in FLOODPLAIN_500_YEAR
    if prop.flood_zone_data:
        flood.update(prop.flood_zone_data)

    hoa = {}
    if prop.mud_district:
        hoa["mud_district"] = prop.mud_district
        hoa["mud_annual_fee"] = prop.mud_annual_fee

    changes = {"header_data": _merge(values.get("header_data"), header)}
    if roof:
        changes["section1_roof_info"] = _merge(values.get("section1_roof_info"), roof)
    if flood:
        changes["section5_flood_data"] = _merge(values.get("section5_flood_data"), flood)
    if hoa:
        changes["section8_hoa_details"] = _merge(values.get("section8_hoa_details"), hoa)
    return changes


def _item(present, notes) -> dict:
    return {"checked": bool(present), "notes": "" if notes is None else str(notes)}


def checklist_prefill(prop: Property, values: dict) -> dict:
    details = {
        "property_address": _item(True, prop.full_address()),
        "year_built": _item(prop.year_built, prop.year_built),
        "bedrooms_bathrooms": _item(
            prop.bedrooms and prop.bathrooms,
            f"{prop.bedrooms or '?'} bed / {prop.bathrooms or '?'} bath",
        ),
        "square_footage": _item(prop.sqft, prop.sqft),
        "lot_size": _item(prop.lot_size, prop.lot_size),
        "property_type": _item(prop.property_type, prop.property_type),
        "parking_details": _item(False, ""),
    }
    return {"property_details": _merge(values.get("property_details"), details)}
