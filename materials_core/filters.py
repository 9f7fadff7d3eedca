import django_filters as df

from .models import Material, WorkflowAlert


class MaterialFilter(df.FilterSet):
    stage = df.ChoiceFilter(choices=Material.Stage.choices)
    status = df.ChoiceFilter(choices=Material.Status.choices)
    material_type = df.CharFilter(field_name="material_type", lookup_expr="icontains")
    customer_name = df.CharFilter(field_name="customer_name", lookup_expr="icontains")
    received_at = df.DateFromToRangeFilter()

    class Meta:
        model = Material
        fields = ["stage", "status", "material_type", "customer_name", "received_at"]


class WorkflowAlertFilter(df.FilterSet):
    material = df.UUIDFilter(field_name="material_id")
    open = df.BooleanFilter(field_name="resolved_at", lookup_expr="isnull")

    class Meta:
        model = WorkflowAlert
        fields = ["material", "stage", "open"]
