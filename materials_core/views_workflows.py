# materials_core/views_workflows.py
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .workflows import workflow_definition


class WorkflowDefinitionView(APIView):
    """
    Returns the full lifecycle definition: stages, transitions, evidence
    gates and role visibility.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(workflow_definition())
