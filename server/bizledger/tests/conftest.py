import pytest

from bizledger.auth import AuthContext, get_auth_context
from bizledger.db import get_db
from bizledger.main import app


@pytest.fixture(autouse=True)
def override_auth(request):
    if request.node.get_closest_marker("real_auth"):
        yield
        app.dependency_overrides.pop(get_db, None)
        return

    app.dependency_overrides[get_auth_context] = lambda: AuthContext(
        user_id=1,
        registration_type="Sole Proprietorship",
        email="owner@bizledger.local",
    )
    yield
    app.dependency_overrides.pop(get_auth_context, None)
    app.dependency_overrides.pop(get_db, None)
