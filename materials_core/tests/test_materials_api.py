# materials_core/tests/test_materials_api.py

import uuid

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from materials_core.models import AuditLog, Certificate, Material, TestRecord, WorkflowTransition
from materials_core.workflows import rules


def _ids(resp):
    return {row["id"] for row in resp.json()["results"]}


# ---------------------------------------------------------------
# Registration
# ---------------------------------------------------------------
@pytest.mark.django_db
def test_secretary_registers_material(api_client, secretary):
    resp = api_client.as_user(secretary).post(
        "/api/materials/",
        {
            "name": "Cube C-12",
            "material_type": "concrete",
            "customer_name": "ACME Construction",
            "stage": rules.COMPLETED,
        },
        format="json",
    )

    assert resp.status_code == 201, resp.content
    data = resp.json()
    assert data["stage"] == rules.RECEIVED
    assert data["status"] == rules.PENDING
    assert data["version"] == 1
    assert data["qr_payload"] == data["id"]
    assert data["created_by"]["username"] == "secretary"


@pytest.mark.django_db
def test_tester_cannot_register_material(api_client, tester):
    resp = api_client.as_user(tester).post(
        "/api/materials/",
        {"material_type": "steel", "customer_name": "X"},
        format="json",
    )
    assert resp.status_code == 403


@pytest.mark.django_db
def test_user_without_role_is_refused(api_client, no_role_user, material):
    client = api_client.as_user(no_role_user)
    assert client.get("/api/materials/").status_code == 403
    assert client.post(
        f"/api/materials/{material.id}/transition/", {"decision": "accept"}, format="json"
    ).status_code == 403


@pytest.mark.django_db
def test_materials_cannot_be_edited_or_deleted(api_client, uncle, material):
    client = api_client.as_user(uncle)
    assert client.patch(f"/api/materials/{material.id}/", {"name": "x"}, format="json").status_code == 405
    assert client.delete(f"/api/materials/{material.id}/").status_code == 405


# ---------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------
@pytest.mark.django_db
def test_listing_follows_role_visibility(api_client, tester, material_factory):
    received = material_factory(stage=rules.RECEIVED)
    testing = material_factory(stage=rules.TESTING, status=rules.IN_PROGRESS)
    review = material_factory(stage=rules.REVIEW, status=rules.IN_PROGRESS)

    client = api_client.as_user(tester)
    ids = _ids(client.get("/api/materials/"))

    assert str(received.id) in ids
    assert str(testing.id) in ids
    assert str(review.id) not in ids

    # direct lookups are not restricted by the listing filter
    assert client.get(f"/api/materials/{review.id}/").status_code == 200


@pytest.mark.django_db
def test_actionable_listing_for_secretary(api_client, secretary, material_factory):
    received = material_factory(stage=rules.RECEIVED)
    accounting = material_factory(stage=rules.ACCOUNTING, status=rules.IN_PROGRESS)

    client = api_client.as_user(secretary)
    assert _ids(client.get("/api/materials/")) == {str(received.id)}
    assert _ids(client.get("/api/materials/?actionable=true")) == {str(accounting.id)}


@pytest.mark.django_db
def test_uncle_sees_everything_and_summary_counts(api_client, uncle, material_factory):
    for stage in rules.STAGE_ORDER:
        material_factory(stage=stage, status=None if stage == rules.COMPLETED else rules.IN_PROGRESS)

    client = api_client.as_user(uncle)
    assert client.get("/api/materials/").json()["count"] == len(rules.STAGE_ORDER)

    summary = client.get("/api/materials/summary/").json()
    assert summary["role"] == rules.UNCLE
    assert summary["total"] == len(rules.STAGE_ORDER)
    assert summary["stages"][rules.TESTING] == {"total": 1, rules.IN_PROGRESS: 1}


@pytest.mark.django_db
def test_filter_by_stage(api_client, uncle, material_factory):
    material_factory(stage=rules.RECEIVED)
    qc = material_factory(stage=rules.QC, status=rules.PENDING)

    resp = api_client.as_user(uncle).get("/api/materials/", {"stage": rules.QC})
    assert _ids(resp) == {str(qc.id)}


# ---------------------------------------------------------------
# Transitions over HTTP
# ---------------------------------------------------------------
@pytest.mark.django_db
def test_transition_endpoint_reject_and_recover(api_client, tester, manager, material, record_evidence):
    record_evidence(material, rules.EVIDENCE_TEST, by=tester)
    url = f"/api/materials/{material.id}/transition/"

    resp = api_client.as_user(tester).post(url, {"decision": "accept"}, format="json")
    assert resp.status_code == 200, resp.content
    assert resp.json()["to"] == {"stage": rules.TESTING, "status": rules.IN_PROGRESS}

    resp = api_client.as_user(manager).post(url, {"decision": "reject", "comment": "redo"}, format="json")
    assert resp.json()["to"] == {"stage": rules.RECEIVED, "status": rules.REJECTED}

    resp = api_client.as_user(tester).post(url, {"decision": "accept"}, format="json")
    assert resp.json()["to"] == {"stage": rules.TESTING, "status": rules.IN_PROGRESS}

    resp = api_client.as_user(manager).post(url, {"decision": "accept"}, format="json")
    assert resp.json()["to"] == {"stage": rules.REVIEW, "status": rules.IN_PROGRESS}

    timeline = api_client.as_user(manager).get(f"/api/materials/{material.id}/timeline/").json()
    assert [t["decision"] for t in timeline["timeline"]] == ["accept", "reject", "accept", "accept"]
    assert timeline["version"] == 5


@pytest.mark.django_db
def test_transition_endpoint_error_codes(api_client, secretary, tester, material_factory):
    testing = material_factory(stage=rules.TESTING, status=rules.IN_PROGRESS)
    resp = api_client.as_user(secretary).post(
        f"/api/materials/{testing.id}/transition/", {"decision": "accept"}, format="json"
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "unauthorized"

    received = material_factory()
    resp = api_client.as_user(tester).post(
        f"/api/materials/{received.id}/transition/", {"decision": "accept"}, format="json"
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "missing_evidence"
    assert resp.json()["missing"] == [rules.EVIDENCE_TEST]

    resp = api_client.as_user(tester).post(
        f"/api/materials/{received.id}/transition/", {"decision": "reject"}, format="json"
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_decision"

    resp = api_client.as_user(tester).post(
        f"/api/materials/{received.id}/transition/", {"decision": "shrug"}, format="json"
    )
    assert resp.status_code == 400
    assert "decision" in resp.json()


@pytest.mark.django_db
def test_transition_on_completed_is_terminal(api_client, uncle, material_factory):
    done = material_factory(stage=rules.COMPLETED)
    resp = api_client.as_user(uncle).post(
        f"/api/materials/{done.id}/transition/", {"decision": "accept"}, format="json"
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "terminal"


@pytest.mark.django_db
def test_transition_version_conflict_is_409(api_client, tester, material, record_evidence):
    record_evidence(material, rules.EVIDENCE_TEST, by=tester)
    resp = api_client.as_user(tester).post(
        f"/api/materials/{material.id}/transition/",
        {"decision": "accept", "expected_version": 3},
        format="json",
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "version_conflict"


@pytest.mark.django_db
def test_unknown_material_is_404(api_client, tester):
    resp = api_client.as_user(tester).post(
        f"/api/materials/{uuid.uuid4()}/transition/", {"decision": "accept"}, format="json"
    )
    assert resp.status_code == 404


@pytest.mark.django_db
def test_actions_endpoint(api_client, tester, material):
    data = api_client.as_user(tester).get(f"/api/materials/{material.id}/actions/").json()
    assert data["can_act"] is True
    assert data["missing_evidence"] == [rules.EVIDENCE_TEST]


@pytest.mark.django_db
def test_force_state_endpoint(api_client, uncle, manager, material):
    url = f"/api/materials/{material.id}/force-state/"
    payload = {"stage": "Final Approval", "status": "pending", "reason": "Migrated record"}

    assert api_client.as_user(manager).post(url, payload, format="json").status_code == 403

    resp = api_client.as_user(uncle).post(url, payload, format="json")
    assert resp.status_code == 200, resp.content
    assert resp.json()["to"] == {"stage": rules.FINAL_APPROVAL, "status": rules.PENDING}
    assert WorkflowTransition.objects.get(material=material).forced is True

    resp = api_client.as_user(uncle).post(url, {"stage": "review", "status": "pending"}, format="json")
    assert resp.status_code == 400


# ---------------------------------------------------------------
# QR scan
# ---------------------------------------------------------------
@pytest.mark.django_db
def test_scan_resolves_urls_and_bare_ids(api_client, tester, material):
    client = api_client.as_user(tester)

    resp = client.get("/api/materials/scan/", {"code": f"https://lab.example/materials/{material.id}/"})
    assert resp.status_code == 200
    assert resp.json()["id"] == str(material.id)

    resp = client.get("/api/materials/scan/", {"code": str(material.id).upper()})
    assert resp.status_code == 200


@pytest.mark.django_db
def test_scan_errors(api_client, tester):
    client = api_client.as_user(tester)
    assert client.get("/api/materials/scan/").status_code == 400
    assert client.get("/api/materials/scan/", {"code": "not a code"}).status_code == 400
    assert client.get("/api/materials/scan/", {"code": str(uuid.uuid4())}).status_code == 404


# ---------------------------------------------------------------
# Evidence endpoints
# ---------------------------------------------------------------
@pytest.mark.django_db
def test_tester_records_test_and_secretary_cannot(api_client, tester, secretary, material):
    payload = {"material": str(material.id), "test_type": "slump", "result": "75 mm"}

    resp = api_client.as_user(secretary).post("/api/tests/", payload, format="json")
    assert resp.status_code == 403

    resp = api_client.as_user(tester).post("/api/tests/", payload, format="json")
    assert resp.status_code == 201, resp.content
    assert resp.json()["recorded_by"]["username"] == "tester"
    assert TestRecord.objects.filter(material=material).count() == 1

    evidence = api_client.as_user(tester).get(f"/api/materials/{material.id}/evidence/").json()
    assert evidence["counts"][rules.EVIDENCE_TEST] == 1
    assert evidence["satisfied"] == [rules.EVIDENCE_TEST]


@pytest.mark.django_db
def test_evidence_is_not_updatable(api_client, tester, material, record_evidence):
    record = record_evidence(material, rules.EVIDENCE_TEST, by=tester)
    client = api_client.as_user(tester)
    assert client.patch(f"/api/tests/{record.pk}/", {"result": "x"}, format="json").status_code == 405
    assert client.delete(f"/api/tests/{record.pk}/").status_code == 405


@pytest.mark.django_db
def test_no_evidence_on_completed_material(api_client, secretary, material_factory):
    done = material_factory(stage=rules.COMPLETED)
    resp = api_client.as_user(secretary).post(
        "/api/payments/",
        {"material": str(done.id), "amount": "10.00", "payment_method": "cash"},
        format="json",
    )
    assert resp.status_code == 400
    assert "material" in resp.json()


@pytest.mark.django_db
def test_quote_amount_must_be_positive(api_client, accountant, material_factory):
    m = material_factory(stage=rules.QC, status=rules.IN_PROGRESS)
    resp = api_client.as_user(accountant).post(
        "/api/quotes/", {"material": str(m.id), "amount": "0"}, format="json"
    )
    assert resp.status_code == 400
    assert "amount" in resp.json()


@pytest.mark.django_db
def test_quotes_are_visible_to_accounting_only(api_client, accountant, uncle, tester, manager, material_factory, record_evidence):
    m = material_factory(stage=rules.QC, status=rules.IN_PROGRESS)
    quote = record_evidence(m, rules.EVIDENCE_QUOTE, by=accountant, terms="Net 15 days")

    for user in (tester, manager):
        client = api_client.as_user(user)
        assert client.get("/api/quotes/").status_code == 403
        assert client.get(f"/api/quotes/{quote.pk}/").status_code == 403

    rows = api_client.as_user(accountant).get("/api/quotes/").json()["results"]
    assert [r["terms"] for r in rows] == ["Net 15 days"]
    assert api_client.as_user(uncle).get(f"/api/quotes/{quote.pk}/").status_code == 200


@pytest.mark.django_db
def test_certificate_upload_records_file_metadata(api_client, tester, material):
    upload = SimpleUploadedFile("report.pdf", b"%PDF-1.4 test", content_type="application/pdf")

    resp = api_client.as_user(tester).post(
        "/api/certificates/",
        {"material": str(material.id), "file": upload},
        format="multipart",
    )

    assert resp.status_code == 201, resp.content
    cert = Certificate.objects.get(material=material)
    assert cert.file_name == "report.pdf"
    assert cert.file_type == "application/pdf"
    assert cert.file_size == len(b"%PDF-1.4 test")
    assert cert.file.name.startswith(f"certificates/{material.id}/")


# ---------------------------------------------------------------
# Identity / definition / administration
# ---------------------------------------------------------------
@pytest.mark.django_db
def test_whoami_and_definition(api_client, accountant, make_user):
    client = api_client.as_user(accountant)

    me = client.get("/api/whoami/").json()
    assert me["role"] == rules.ACCOUNTING_ROLE
    assert me["visible_stages"] == [rules.QC, rules.ACCOUNTING]
    assert me["acting_stages"] == [rules.QC]

    admin = make_user(None, username="root", is_superuser=True, is_staff=True)
    assert api_client.as_user(admin).get("/api/whoami/").json()["role"] == rules.UNCLE

    definition = client.get("/api/workflow/definition/").json()
    assert definition["transitions"][rules.RECEIVED]["accept"] == rules.TESTING
    assert "reject" not in definition["transitions"][rules.RECEIVED]
    assert definition["transitions"][rules.COMPLETED] == {}


@pytest.mark.django_db
def test_alerts_and_audit_are_uncle_only(api_client, tester, uncle):
    assert api_client.as_user(tester).get("/api/alerts/").status_code == 403
    assert api_client.as_user(tester).get("/api/audit-logs/").status_code == 403
    assert api_client.as_user(uncle).get("/api/alerts/").status_code == 200
    assert api_client.as_user(uncle).get("/api/audit-logs/").status_code == 200


@pytest.mark.django_db
def test_health_is_public(api_client):
    resp = api_client.get("/api/health/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.django_db
def test_registration_is_audited(api_client, secretary):
    api_client.as_user(secretary).post(
        "/api/materials/",
        {"material_type": "steel", "customer_name": "ACME"},
        format="json",
    )
    entry = AuditLog.objects.get(action="CREATE", details__model="Material")
    assert entry.user == secretary
    assert Material.objects.count() == 1
