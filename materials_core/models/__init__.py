from .core import AuditLog, Material, TimeStampedModel, UserRole
from .evidence import (
    EVIDENCE_MODELS,
    Certificate,
    Decision,
    FinalApproval,
    Payment,
    QCInspection,
    Quote,
    TestRecord,
)
from .workflow import WorkflowAlert, WorkflowTransition

__all__ = [
    "TimeStampedModel",
    "UserRole",
    "Material",
    "AuditLog",
    "Decision",
    "TestRecord",
    "QCInspection",
    "Quote",
    "FinalApproval",
    "Payment",
    "Certificate",
    "EVIDENCE_MODELS",
    "WorkflowTransition",
    "WorkflowAlert",
]
