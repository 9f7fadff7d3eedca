# materials_core/views_workflow_api.py

from __future__ import annotations

from django.shortcuts import get_object_or_404

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from materials_core.models import Material
from materials_core.permissions import HasWorkflowRole, IsUncle, resolve_role
from materials_core.serializers import (
    ForceStateRequestSerializer,
    TransitionRequestSerializer,
)
from materials_core.workflows.executor import (
    available_actions,
    execute_transition,
    force_material_state,
)


# =============================================================
# API: Available actions
# =============================================================

class MaterialActionsView(APIView):
    """
    GET /api/materials/<id>/actions/

    Returns:
    - current stage, status and version
    - decisions the caller may make now
    - evidence still missing for an accept
    """

    permission_classes = [IsAuthenticated, HasWorkflowRole]

    def get(self, request, pk):
        material = get_object_or_404(Material, pk=pk)
        return Response(available_actions(material, resolve_role(request.user)))


# =============================================================
# API: Execute transition (AUTHORITATIVE)
# =============================================================

class MaterialTransitionView(APIView):
    """
    POST /api/materials/<id>/transition/

    Body:
        { "decision": "accept" | "reject", "comment": "...", "expected_version": 3 }

    This endpoint is the ONLY API-level entry point that moves a material
    through the normal lifecycle.
    """

    permission_classes = [IsAuthenticated, HasWorkflowRole]

    @extend_schema(
        request=TransitionRequestSerializer,
        responses={
            200: OpenApiResponse(description="Transition accepted"),
            400: OpenApiResponse(description="Terminal stage, missing evidence or invalid decision"),
            403: OpenApiResponse(description="Role not authorized for the current stage"),
            409: OpenApiResponse(description="Material changed since expected_version"),
        },
    )
    def post(self, request, pk):
        material = get_object_or_404(Material, pk=pk)

        payload = TransitionRequestSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        result = execute_transition(
            material=material,
            user=request.user,
            decision=data["decision"],
            comment=data.get("comment", ""),
            expected_version=data.get("expected_version"),
        )
        return Response(result)


# =============================================================
# API: Administrative override
# =============================================================

class MaterialForceStateView(APIView):
    """
    POST /api/materials/<id>/force-state/

    Body:
        { "stage": "testing", "status": "in_progress", "reason": "..." }

    Recovery escape hatch for the uncle role. Bypasses the transition table
    and is recorded as a forced transition.
    """

    permission_classes = [IsAuthenticated, IsUncle]

    @extend_schema(request=ForceStateRequestSerializer)
    def post(self, request, pk):
        material = get_object_or_404(Material, pk=pk)

        payload = ForceStateRequestSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        result = force_material_state(
            material=material,
            user=request.user,
            stage=data["stage"],
            status=data["status"],
            reason=data["reason"],
        )
        return Response(result)
