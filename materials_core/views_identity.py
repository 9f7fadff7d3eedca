# materials_core/views_identity.py
from __future__ import annotations

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .permissions import resolve_role
from .workflows import STAGE_ORDER, visible_stages
from .workflows.rules import STAGE_ACTORS


class WhoAmIView(APIView):
    """
    Returns the currently authenticated user, their workflow role, and the
    stages that role may see and act on.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user
        role = resolve_role(user)
        visible = visible_stages(role)

        return Response(
            {
                "id": user.id,
                "username": user.get_username(),
                "is_superuser": bool(getattr(user, "is_superuser", False)),
                "role": role or None,
                "visible_stages": [s for s in STAGE_ORDER if s in visible],
                "acting_stages": [
                    s for s in STAGE_ORDER if role and role in STAGE_ACTORS.get(s, ())
                ],
            }
        )
