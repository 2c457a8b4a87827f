from conftest import ADMIN_HEADERS, buyer_headers, filled_disclosure_sections, seller_headers

SELLER = seller_headers()
OTHER_SELLER = seller_headers("seller-2", "seller2@example.com")


def create_property(client, headers=SELLER, **extra):
    payload = {"address_line1": "500 Elm St", "city": "Austin", "state": "TX", "zip_code": "78701", "year_built": 1990}
    payload.update(extra)
    response = client.post("/api/properties", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()["id"]


def open_disclosure(client, property_id, headers=SELLER):
    response = client.get(f"/api/disclosures/property/{property_id}", headers=headers)
    assert response.status_code == 200
    return response.json()


def test_access_token_is_required(client):
    property_id = create_property(client)
    assert client.get(f"/api/disclosures/property/{property_id}").status_code == 401
    bad = client.get(f"/api/disclosures/property/{property_id}", headers={"X-Access-Token": "nope"})
    assert bad.status_code == 403
    as_buyer = client.get(f"/api/disclosures/property/{property_id}", headers=buyer_headers())
    assert as_buyer.status_code == 403


def test_get_or_create_by_property(client):
    property_id = create_property(client)
    first = open_disclosure(client, property_id)
    assert first["is_new"] is True
    assert first["form_type"] == "disclosure"
    assert first["completion"] == 0
    assert first["document"]["status"] == "draft"
    assert "version" not in first["document"]
    assert len(first["sections_summary"]) == 13

    second = open_disclosure(client, property_id)
    assert second["is_new"] is False
    assert second["document"]["id"] == first["document"]["id"]

    token_in_query = client.get(
        f"/api/disclosures/property/{property_id}", params={"token": SELLER["X-Access-Token"]}
    )
    assert token_in_query.status_code == 200


def test_other_seller_is_refused(client):
    property_id = create_property(client)
    doc_id = open_disclosure(client, property_id)["document"]["id"]
    response = client.get(f"/api/disclosures/{doc_id}", headers=OTHER_SELLER)
    assert response.status_code == 403
    assert response.json()["kind"] == "not_authorized"
    assert client.get(f"/api/disclosures/property/{property_id}", headers=OTHER_SELLER).status_code == 403


def test_missing_document_and_property(client):
    assert client.get("/api/disclosures/does-not-exist", headers=SELLER).status_code == 404
    response = client.get("/api/disclosures/property/does-not-exist", headers=SELLER)
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


def test_auto_save_section(client):
    property_id = create_property(client)
    doc_id = open_disclosure(client, property_id)["document"]["id"]

    response = client.patch(
        f"/api/disclosures/{doc_id}/sections/section1_property_items",
        json={"range": "Y", "oven": "Y"},
        headers=SELLER,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["completion"] == 8
    assert body["document"]["status"] == "in_progress"
    assert body["document"]["last_auto_save"]
    assert body["sections_summary"]["section1_property_items"]["completed"] is True

    flag = client.patch(f"/api/disclosures/{doc_id}/sections/section4_additional_repairs", json=False, headers=SELLER)
    assert flag.status_code == 200
    assert flag.json()["completion"] == 15


def test_invalid_section_payload(client):
    property_id = create_property(client)
    doc_id = open_disclosure(client, property_id)["document"]["id"]

    wrong_type = client.patch(f"/api/disclosures/{doc_id}/sections/section4_additional_repairs", json="maybe", headers=SELLER)
    assert wrong_type.status_code == 400
    assert wrong_type.json()["kind"] == "invalid_section"

    unknown = client.patch(f"/api/disclosures/{doc_id}/sections/section99", json={}, headers=SELLER)
    assert unknown.status_code == 400
    assert "allowed" in unknown.json()["detail"]

    current = client.get(f"/api/disclosures/{doc_id}", headers=SELLER).json()
    assert current["completion"] == 0
    assert current["document"]["status"] == "draft"


def test_validate_complete_and_sign(client):
    property_id = create_property(client)
    doc_id = open_disclosure(client, property_id)["document"]["id"]

    check = client.post(f"/api/disclosures/{doc_id}/validate", headers=SELLER).json()
    assert check["can_complete"] is False
    assert len(check["missing_sections"]) == 13

    refused = client.post(f"/api/disclosures/{doc_id}/complete", headers=SELLER)
    assert refused.status_code == 400
    assert refused.json()["kind"] == "incomplete_form"
    assert "section13_smoke_detectors" in refused.json()["detail"]["missing_sections"]

    early = client.post(
        f"/api/disclosures/{doc_id}/sign",
        json={"slot": "seller1", "signature_data": "data:image/png;base64,AAAA", "printed_name": "Sam Seller"},
        headers=SELLER,
    )
    assert early.status_code == 400
    assert early.json()["kind"] == "incomplete_form"

    updated = client.put(f"/api/disclosures/{doc_id}", json={"sections": filled_disclosure_sections()}, headers=SELLER)
    assert updated.status_code == 200
    assert updated.json()["completion"] == 100

    done = client.post(f"/api/disclosures/{doc_id}/complete", headers=SELLER)
    assert done.status_code == 200
    assert done.json()["document"]["status"] == "completed"

    signed = client.post(
        f"/api/disclosures/{doc_id}/sign",
        json={"slot": "seller1", "signature_data": "data:image/png;base64,AAAA", "printed_name": "Sam Seller"},
        headers=SELLER,
    )
    assert signed.status_code == 200
    assert signed.json()["status"] == "signed"

    again = client.post(
        f"/api/disclosures/{doc_id}/sign",
        json={"slot": "seller1", "signature_data": "data:image/png;base64,AAAA", "printed_name": "Sam Seller"},
        headers=SELLER,
    )
    assert again.status_code == 400
    assert again.json()["kind"] == "invalid_slot"

    locked = client.patch(f"/api/disclosures/{doc_id}/sections/section6_flood_claim", json=True, headers=SELLER)
    assert locked.status_code == 403

    reopened = client.post(f"/api/disclosures/{doc_id}/reopen", headers=SELLER)
    assert reopened.status_code == 200
    assert reopened.json()["document"]["status"] == "in_progress"
    assert reopened.json()["document"]["seller1_signature"] is None


def test_update_rejects_unknown_sections(client):
    property_id = create_property(client)
    doc_id = open_disclosure(client, property_id)["document"]["id"]
    response = client.put(
        f"/api/disclosures/{doc_id}",
        json={"sections": {"section6_flood_claim": False, "status": "completed"}},
        headers=SELLER,
    )
    assert response.status_code == 400
    assert response.json()["detail"]["sections"] == ["status"]


def test_prefill_from_property(client):
    property_id = create_property(client, flood_zone="AE", year_built=1970)
    doc_id = open_disclosure(client, property_id)["document"]["id"]
    response = client.post(f"/api/disclosures/{doc_id}/prefill", headers=SELLER)
    assert response.status_code == 200
    document = response.json()["document"]
    assert document["header_data"]["property_address"] == "500 Elm St, Austin, TX 78701"
    assert document["section1_roof_info"]["built_before_1978"] == "yes"
    assert document["section5_flood_data"]["in_100_year_floodplain"] is True
    assert response.json()["completion"] == 8


def test_attachments_and_analytics(client):
    property_id = create_property(client)
    doc_id = open_disclosure(client, property_id)["document"]["id"]

    added = client.post(
        f"/api/disclosures/{doc_id}/attachments",
        json={"name": "survey.pdf", "type": "survey", "url": "https://files.example.com/survey.pdf", "size": 2048},
        headers=SELLER,
    )
    assert added.status_code == 201
    attachment_id = added.json()["attachment"]["id"]
    assert added.json()["total_attachments"] == 1

    bad_type = client.post(
        f"/api/disclosures/{doc_id}/attachments",
        json={"name": "x", "type": "selfie", "url": "https://files.example.com/x"},
        headers=SELLER,
    )
    assert bad_type.status_code == 422

    removed = client.delete(f"/api/disclosures/{doc_id}/attachments/{attachment_id}", headers=SELLER)
    assert removed.status_code == 200
    assert removed.json()["total_attachments"] == 0

    summary = client.get(f"/api/disclosures/{doc_id}/analytics", headers=SELLER).json()
    assert summary["events_by_type"] == {"created": 1, "attachment_added": 1, "attachment_removed": 1}
    assert summary["total_events"] == 3


def test_admin_reads_but_does_not_edit(client):
    property_id = create_property(client)
    doc_id = open_disclosure(client, property_id)["document"]["id"]

    via_property = client.get(f"/api/disclosures/property/{property_id}", headers=ADMIN_HEADERS)
    assert via_property.status_code == 200
    assert via_property.json()["document"]["id"] == doc_id

    listed = client.get("/api/disclosures/seller", params={"seller_id": "seller-1"}, headers=ADMIN_HEADERS)
    assert [d["document"]["id"] for d in listed.json()] == [doc_id]
    assert client.get("/api/disclosures/seller", headers=ADMIN_HEADERS).status_code == 400

    edit = client.patch(f"/api/disclosures/{doc_id}/sections/section6_flood_claim", json=False, headers=ADMIN_HEADERS)
    assert edit.status_code == 403


def test_seller_lists_own_disclosures(client):
    first = open_disclosure(client, create_property(client))["document"]["id"]
    second = open_disclosure(client, create_property(client, address_line1="9 Oak Ln"))["document"]["id"]
    open_disclosure(client, create_property(client, headers=OTHER_SELLER), headers=OTHER_SELLER)

    listed = client.get("/api/disclosures/seller", headers=SELLER)
    assert listed.status_code == 200
    assert {d["document"]["id"] for d in listed.json()} == {first, second}


def test_properties_are_scoped_to_seller(client):
    mine = create_property(client)
    create_property(client, headers=OTHER_SELLER)
    listed = client.get("/api/properties", headers=SELLER).json()
    assert [p["id"] for p in listed] == [mine]
    assert len(client.get("/api/properties", headers=ADMIN_HEADERS).json()) == 2
    assert client.post("/api/properties", json={"address_line1": "x"}, headers=ADMIN_HEADERS).status_code == 400


def test_admin_gets_not_found_for_unknown_property(client):
    response = client.get("/api/disclosures/property/does-not-exist", headers=ADMIN_HEADERS)
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"
