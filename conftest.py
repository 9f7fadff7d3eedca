import pytest


@pytest.fixture(autouse=True)
def _test_settings(settings, tmp_path):
    # Cookies and redirects assume HTTPS in deployment
    settings.SECURE_SSL_REDIRECT = False
    settings.SESSION_COOKIE_SECURE = False
    settings.CSRF_COOKIE_SECURE = False

    # Uploaded certificates never land in the project tree
    settings.MEDIA_ROOT = str(tmp_path / "media")

    settings.WORKFLOW_EMAIL_NOTIFICATIONS = False
    settings.STALE_STAGE_GRACE_MINUTES = 30


@pytest.fixture(autouse=True)
def _reset_current_user():
    from materials_core.signals import set_current_user

    # The audit user is thread-local; never leak it between tests
    set_current_user(None)
    yield
    set_current_user(None)
