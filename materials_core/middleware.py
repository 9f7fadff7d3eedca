# materials_core/middleware.py

from django.contrib.auth.models import AnonymousUser
from django.utils.deprecation import MiddlewareMixin

from .signals import set_current_user


class CurrentUserMiddleware(MiddlewareMixin):
    """
    Makes request.user available to model signals.

    Must run after AuthenticationMiddleware and tolerate unauthenticated
    requests. JWT-authenticated API calls resolve the user later, inside
    DRF; views call set_current_user() themselves for those.
    """

    def process_request(self, request):
        user = getattr(request, "user", None)

        if user is None or isinstance(user, AnonymousUser):
            set_current_user(None)
        else:
            set_current_user(user)

        return None

    def process_response(self, request, response):
        """
        Clear user after request completes.
        """
        set_current_user(None)
        return response
