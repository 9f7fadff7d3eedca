# materials_core/tests/conftest.py

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any, Callable, Dict

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from materials_core.models import (
    Certificate,
    FinalApproval,
    Material,
    Payment,
    QCInspection,
    Quote,
    TestRecord,
    UserRole,
)
from materials_core.workflows import rules


def _rand(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


class AuthAPIClient(APIClient):
    """
    Test client authenticated as a given user via force_authenticate.
    """

    def as_user(self, user) -> "AuthAPIClient":
        self.force_authenticate(user=user)
        return self


@pytest.fixture
def api_client() -> AuthAPIClient:
    return AuthAPIClient()


# ---------------------------------------------------------------
# Users per role
# ---------------------------------------------------------------
@pytest.fixture
def make_user(db) -> Callable[..., Any]:
    User = get_user_model()

    def _factory(role: str | None = None, *, username: str | None = None, **extra):
        user = User.objects.create_user(
            username=username or _rand(role or "user"),
            password="pass123",
            **extra,
        )
        if role:
            UserRole.objects.create(user=user, role=role)
        return user

    return _factory


@pytest.fixture
def secretary(make_user):
    return make_user(rules.SECRETARY, username="secretary")


@pytest.fixture
def tester(make_user):
    return make_user(rules.TESTER, username="tester")


@pytest.fixture
def manager(make_user):
    return make_user(rules.MANAGER, username="manager")


@pytest.fixture
def qc_user(make_user):
    return make_user(rules.QC_ROLE, username="qc")


@pytest.fixture
def accountant(make_user):
    return make_user(rules.ACCOUNTING_ROLE, username="accountant")


@pytest.fixture
def uncle(make_user):
    return make_user(rules.UNCLE, username="uncle")


@pytest.fixture
def no_role_user(make_user):
    return make_user(None, username="nobody")


@pytest.fixture
def role_users(secretary, tester, manager, qc_user, accountant, uncle) -> Dict[str, Any]:
    return {
        rules.SECRETARY: secretary,
        rules.TESTER: tester,
        rules.MANAGER: manager,
        rules.QC_ROLE: qc_user,
        rules.ACCOUNTING_ROLE: accountant,
        rules.UNCLE: uncle,
    }


# ---------------------------------------------------------------
# Materials
# ---------------------------------------------------------------
@pytest.fixture
def material_factory(db, secretary) -> Callable[..., Material]:
    """
    Create materials directly at any (stage, status) pair.
    Uses the workflow bypass because stage/status are server-controlled.
    """

    def _factory(
        *,
        stage: str = rules.RECEIVED,
        status: str | None = None,
        **extra: Any,
    ) -> Material:
        if status is None:
            status = rules.STATUS_COMPLETED if stage == rules.COMPLETED else rules.PENDING

        material = Material(
            name=extra.pop("name", _rand("Sample")),
            material_type=extra.pop("material_type", "concrete"),
            customer_name=extra.pop("customer_name", "ACME Construction"),
            created_by=extra.pop("created_by", secretary),
            stage=stage,
            status=status,
            **extra,
        )
        material.save(_workflow_bypass=True)
        return material

    return _factory


@pytest.fixture
def material(material_factory) -> Material:
    return material_factory()


# ---------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------
_EVIDENCE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    rules.EVIDENCE_TEST: {"test_type": "compressive strength", "result": "32 MPa"},
    rules.EVIDENCE_QC_INSPECTION: {"decision": "approve", "comments": "ok"},
    rules.EVIDENCE_QUOTE: {"amount": Decimal("150.00")},
    rules.EVIDENCE_FINAL_APPROVAL: {"decision": "approve"},
    rules.EVIDENCE_PAYMENT: {"amount": Decimal("150.00"), "payment_method": "cash"},
}

_EVIDENCE_MODELS = {
    rules.EVIDENCE_TEST: TestRecord,
    rules.EVIDENCE_QC_INSPECTION: QCInspection,
    rules.EVIDENCE_QUOTE: Quote,
    rules.EVIDENCE_FINAL_APPROVAL: FinalApproval,
    rules.EVIDENCE_PAYMENT: Payment,
    rules.EVIDENCE_CERTIFICATE: Certificate,
}


@pytest.fixture
def record_evidence(db, uncle) -> Callable[..., Any]:
    """
    Attach an evidence record of `kind` to a material.
    """

    def _record(material: Material, kind: str, *, by=None, **fields: Any):
        data = dict(_EVIDENCE_DEFAULTS.get(kind, {}))
        data.update(fields)
        return _EVIDENCE_MODELS[kind].objects.create(
            material=material,
            recorded_by=by or uncle,
            **data,
        )

    return _record
