# materials_core/tests/test_executor.py

import pytest
from rest_framework.exceptions import PermissionDenied, ValidationError

from materials_core.models import AuditLog, WorkflowAlert, WorkflowTransition
from materials_core.workflows import rules
from materials_core.workflows.executor import (
    Conflict,
    available_actions,
    execute_transition,
    force_material_state,
)


@pytest.mark.django_db
def test_accept_persists_state_version_and_log(material, tester, record_evidence):
    record_evidence(material, rules.EVIDENCE_TEST, by=tester)

    result = execute_transition(material=material, user=tester, decision="accept", comment=" done ")

    material.refresh_from_db()
    assert (material.stage, material.status) == (rules.TESTING, rules.IN_PROGRESS)
    assert material.version == 2
    assert result["version"] == 2
    assert result["from"] == {"stage": rules.RECEIVED, "status": rules.PENDING}
    assert result["to"] == {"stage": rules.TESTING, "status": rules.IN_PROGRESS}

    t = WorkflowTransition.objects.get(pk=result["transition_id"])
    assert t.role == rules.TESTER
    assert t.performed_by == tester
    assert t.comment == "done"
    assert t.forced is False

    assert AuditLog.objects.filter(action__startswith="WORKFLOW ").exists()


@pytest.mark.django_db
def test_refused_transition_changes_nothing(material, secretary):
    with pytest.raises(PermissionDenied) as exc:
        execute_transition(material=material, user=secretary, decision="accept")

    assert exc.value.detail["code"] == "unauthorized"
    material.refresh_from_db()
    assert (material.stage, material.status, material.version) == (rules.RECEIVED, rules.PENDING, 1)
    assert not WorkflowTransition.objects.exists()


@pytest.mark.django_db
def test_missing_evidence_is_a_validation_error(material, tester):
    with pytest.raises(ValidationError) as exc:
        execute_transition(material=material, user=tester, decision="accept")

    assert exc.value.detail["code"] == "missing_evidence"
    assert exc.value.detail["missing"] == [rules.EVIDENCE_TEST]


@pytest.mark.django_db
def test_terminal_material_is_refused(material_factory, uncle):
    done = material_factory(stage=rules.COMPLETED)
    with pytest.raises(ValidationError) as exc:
        execute_transition(material=done, user=uncle, decision="accept")
    assert exc.value.detail["code"] == "terminal"


@pytest.mark.django_db
def test_stale_expected_version_conflicts(material, tester, record_evidence):
    record_evidence(material, rules.EVIDENCE_TEST, by=tester)

    with pytest.raises(Conflict) as exc:
        execute_transition(material=material, user=tester, decision="accept", expected_version=7)

    assert exc.value.status_code == 409
    assert exc.value.detail["code"] == "version_conflict"
    material.refresh_from_db()
    assert material.stage == rules.RECEIVED


@pytest.mark.django_db
def test_two_writers_on_same_version_only_one_wins(material, tester, record_evidence):
    record_evidence(material, rules.EVIDENCE_TEST, by=tester)

    execute_transition(material=material, user=tester, decision="accept", expected_version=1)
    with pytest.raises(Conflict):
        execute_transition(material=material, user=tester, decision="accept", expected_version=1)

    assert WorkflowTransition.objects.filter(material=material).count() == 1


@pytest.mark.django_db
def test_rejecting_inspection_does_not_satisfy_gate(material_factory, qc_user, record_evidence):
    m = material_factory(stage=rules.REVIEW, status=rules.IN_PROGRESS)
    record_evidence(m, rules.EVIDENCE_QC_INSPECTION, by=qc_user, decision="reject")

    with pytest.raises(ValidationError) as exc:
        execute_transition(material=m, user=qc_user, decision="accept")
    assert exc.value.detail["code"] == "missing_evidence"

    record_evidence(m, rules.EVIDENCE_QC_INSPECTION, by=qc_user, decision="approve")
    result = execute_transition(material=m, user=qc_user, decision="accept")
    assert result["to"]["stage"] == rules.QC


@pytest.mark.django_db
def test_later_rejection_withdraws_earlier_approval(material_factory, qc_user, record_evidence):
    m = material_factory(stage=rules.REVIEW, status=rules.REJECTED)
    record_evidence(m, rules.EVIDENCE_QC_INSPECTION, by=qc_user, decision="approve")
    record_evidence(m, rules.EVIDENCE_QC_INSPECTION, by=qc_user, decision="reject")

    with pytest.raises(ValidationError) as exc:
        execute_transition(material=m, user=qc_user, decision="accept")
    assert exc.value.detail["code"] == "missing_evidence"

    m.refresh_from_db()
    assert (m.stage, m.status) == (rules.REVIEW, rules.REJECTED)
    assert rules.EVIDENCE_QC_INSPECTION not in available_actions(m, rules.QC_ROLE)["evidence"]


@pytest.mark.django_db
def test_transition_resolves_alerts_for_left_stage(material, tester, record_evidence):
    record_evidence(material, rules.EVIDENCE_TEST, by=tester)
    alert = WorkflowAlert.objects.create(
        material=material, stage=rules.RECEIVED, evidence_kind=rules.EVIDENCE_TEST
    )

    result = execute_transition(material=material, user=tester, decision="accept")

    alert.refresh_from_db()
    assert alert.resolved_at is not None
    assert result["alerts_resolved"] == 1


# ---------------------------------------------------------------
# Override
# ---------------------------------------------------------------
@pytest.mark.django_db
def test_force_state_records_forced_transition(material, uncle):
    result = force_material_state(
        material=material,
        user=uncle,
        stage=rules.QC,
        status=rules.PENDING,
        reason="Recovered from paper records",
    )

    material.refresh_from_db()
    assert (material.stage, material.status) == (rules.QC, rules.PENDING)
    assert material.version == 2

    t = WorkflowTransition.objects.get(pk=result["transition_id"])
    assert t.forced is True
    assert t.decision == "force"
    assert t.comment == "Recovered from paper records"
    assert AuditLog.objects.filter(action__startswith="WORKFLOW OVERRIDE").exists()


@pytest.mark.django_db
def test_force_state_requires_reason_and_uncle(material, uncle, manager):
    with pytest.raises(ValidationError):
        force_material_state(material=material, user=uncle, stage=rules.QC, status=rules.PENDING, reason=" ")

    with pytest.raises(PermissionDenied):
        force_material_state(material=material, user=manager, stage=rules.QC, status=rules.PENDING, reason="x")

    with pytest.raises(ValidationError) as exc:
        force_material_state(
            material=material, user=uncle, stage=rules.COMPLETED, status=rules.PENDING, reason="x"
        )
    assert exc.value.detail["code"] == "invalid_state"


# ---------------------------------------------------------------
# Introspection
# ---------------------------------------------------------------
@pytest.mark.django_db
def test_available_actions_lists_missing_evidence(material, tester, record_evidence):
    actions = available_actions(material, rules.TESTER)
    assert actions["can_act"] is True
    assert actions["allowed"] == []
    assert actions["missing_evidence"] == [rules.EVIDENCE_TEST]

    record_evidence(material, rules.EVIDENCE_TEST, by=tester)
    actions = available_actions(material, rules.TESTER)
    assert actions["allowed"] == [rules.ACCEPT]
    assert actions["missing_evidence"] == []
    assert actions["evidence"] == [rules.EVIDENCE_TEST]
