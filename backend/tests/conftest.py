import pytest

from funnel_builder import create_app
from funnel_builder.extensions import db
from funnel_builder.models.user import User


@pytest.fixture
def app():
    app = create_app("testing")

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _make_user(email, password="secret123", name="Test User"):
    user = User()
    user.email = email
    user.name = name
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def user(app):
    return _make_user("owner@example.com")


@pytest.fixture
def other_user(app):
    return _make_user("intruder@example.com", name="Other User")


def _login(client, email, password="secret123"):
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.get_json()
    return {"Authorization": f"Bearer {response.get_json()['access_token']}"}


@pytest.fixture
def auth_headers(client, user):
    return _login(client, user.email)


@pytest.fixture
def other_headers(client, other_user):
    return _login(client, other_user.email)
