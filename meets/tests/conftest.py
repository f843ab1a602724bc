import pytest


@pytest.fixture(autouse=True)
def _channels_connection_cleanup(request, django_db_blocker):
    """Channels' WebsocketCommunicator calls close_old_connections(), which
    pytest-django's global DB blocker rejects in SimpleTestCase consumer tests
    (Django's own test runner allows it). Lift the blocker for those tests."""
    if request.module.__name__.endswith("test_consumers"):
        with django_db_blocker.unblock():
            yield
    else:
        yield
