# materials_core/models/evidence.py
"""
Append-only evidence records attached to a material.

Each record is created once by one actor and never changed afterwards.
The lifecycle controller consults their existence before letting a
material leave a stage.
"""

from django.conf import settings
from django.db import models

from materials_core.workflows import rules
from materials_core.workflows.guards import AppendOnlyMixin


class Decision(models.TextChoices):
    APPROVE = "approve", "Approve"
    REJECT = "reject", "Reject"


class EvidenceRecord(AppendOnlyMixin, models.Model):
    EVIDENCE_KIND = ""

    material = models.ForeignKey(
        "materials_core.Material",
        on_delete=models.PROTECT,
        related_name="%(class)s_records",
    )
    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        abstract = True
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.EVIDENCE_KIND} for {self.material_id}"


class TestRecord(EvidenceRecord):
    EVIDENCE_KIND = rules.EVIDENCE_TEST
    __test__ = False

    test_type = models.CharField(max_length=255)
    result = models.TextField()
    notes = models.TextField(blank=True)
    performed_at = models.DateTimeField(null=True, blank=True)


class QCInspection(EvidenceRecord):
    EVIDENCE_KIND = rules.EVIDENCE_QC_INSPECTION

    decision = models.CharField(max_length=16, choices=Decision.choices)
    comments = models.TextField(blank=True)


class Quote(EvidenceRecord):
    EVIDENCE_KIND = rules.EVIDENCE_QUOTE

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.TextField(blank=True, default="Quote for material testing services")
    terms = models.CharField(max_length=255, blank=True, default="Net 30 days")
    validity_period = models.CharField(max_length=100, blank=True, default="30 days")


class FinalApproval(EvidenceRecord):
    EVIDENCE_KIND = rules.EVIDENCE_FINAL_APPROVAL

    decision = models.CharField(max_length=16, choices=Decision.choices)
    comments = models.TextField(blank=True)


class Payment(EvidenceRecord):
    EVIDENCE_KIND = rules.EVIDENCE_PAYMENT

    class Method(models.TextChoices):
        CASH = "cash", "Cash"
        BANK_TRANSFER = "bank_transfer", "Bank transfer"
        CARD = "card", "Card"
        CHEQUE = "cheque", "Cheque"
        MOBILE_MONEY = "mobile_money", "Mobile money"

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(max_length=32, choices=Method.choices)
    reference = models.CharField(max_length=255, blank=True)


def certificate_upload_to(instance, filename):
    return f"certificates/{instance.material_id}/{filename}"


class Certificate(EvidenceRecord):
    EVIDENCE_KIND = rules.EVIDENCE_CERTIFICATE

    file = models.FileField(upload_to=certificate_upload_to)
    file_name = models.CharField(max_length=255, blank=True)
    file_type = models.CharField(max_length=100, blank=True)
    file_size = models.PositiveIntegerField(default=0)


EVIDENCE_MODELS = {
    model.EVIDENCE_KIND: model
    for model in (TestRecord, QCInspection, Quote, FinalApproval, Payment, Certificate)
}
