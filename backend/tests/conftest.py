import pytest

from foodshare import create_app
from foodshare.extensions import db
from foodshare.services import get_services


@pytest.fixture
def app(request, tmp_path):
    """Fresh in-memory database per test.

    Per-test config overrides: ``@pytest.mark.config(SINGLE_ACTIVE_CLAIM_PER_POST=False)``.
    """
    overrides = {"UPLOAD_FOLDER": str(tmp_path / "uploads")}
    marker = request.node.get_closest_marker("config")
    if marker is not None:
        overrides.update(marker.kwargs)
    app = create_app("testing", overrides)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return get_services()


def register(client, username: str, password: str = "secret-pass", **extra) -> dict:
    resp = client.post("/api/v1/auth/register", json={"username": username, "password": password, **extra})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def auth_headers(user: dict) -> dict:
    return {"Authorization": f"Bearer {user['token']}"}


def make_user(services, username: str):
    return services.users.register({"username": username, "password": "secret-pass"})


def make_post(services, owner, **fields):
    data = {"type": "donation", "title": "Fresh bread", "category": "bakery"}
    data.update(fields)
    return services.posts.create(owner.id, data)


@pytest.fixture
def people(services):
    """An owner and two would-be claimers."""
    return make_user(services, "alice"), make_user(services, "bob"), make_user(services, "carol")
