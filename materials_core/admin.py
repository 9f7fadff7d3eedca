# materials_core/admin.py

from django.contrib import admin

from .models import (
    AuditLog,
    Certificate,
    FinalApproval,
    Material,
    Payment,
    QCInspection,
    Quote,
    TestRecord,
    UserRole,
    WorkflowAlert,
    WorkflowTransition,
)


class ReadOnlyAdmin(admin.ModelAdmin):
    """Admin for append-only records: viewable, never editable."""

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =============================================================
# Materials
# =============================================================

@admin.register(Material)
class MaterialAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "name",
        "material_type",
        "customer_name",
        "stage",
        "status",
        "version",
        "received_at",
    )
    list_filter = ("stage", "status", "material_type")
    search_fields = ("id", "name", "customer_name", "material_type")
    ordering = ("-received_at",)

    # stage/status move only through the workflow endpoints
    readonly_fields = ("stage", "status", "version", "created_by", "created_at", "updated_at")

    def save_model(self, request, obj, form, change):
        if not change and not obj.created_by_id:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "updated_at")
    list_filter = ("role",)
    search_fields = ("user__username",)


# =============================================================
# Workflow transitions (READ-ONLY AUDIT LOG)
# =============================================================

@admin.register(WorkflowTransition)
class WorkflowTransitionAdmin(ReadOnlyAdmin):
    list_display = (
        "material",
        "from_stage",
        "from_status",
        "to_stage",
        "to_status",
        "decision",
        "role",
        "forced",
        "performed_by",
        "created_at",
    )
    list_filter = ("decision", "forced", "to_stage")
    search_fields = ("material__id", "performed_by__username")
    ordering = ("-created_at",)


# =============================================================
# Stale-stage alerts (READ-ONLY)
# =============================================================

@admin.register(WorkflowAlert)
class WorkflowAlertAdmin(ReadOnlyAdmin):
    list_display = ("material", "stage", "evidence_kind", "detected_at", "resolved_at")
    list_filter = ("stage", "evidence_kind")
    ordering = ("-detected_at",)


# =============================================================
# Evidence (append-only)
# =============================================================

@admin.register(TestRecord, QCInspection, Quote, FinalApproval, Payment, Certificate)
class EvidenceAdmin(ReadOnlyAdmin):
    list_display = ("id", "material", "recorded_by", "created_at")
    search_fields = ("material__id", "recorded_by__username")


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = ("action", "user", "created_at")
    search_fields = ("action", "user__username")
    ordering = ("-created_at",)
