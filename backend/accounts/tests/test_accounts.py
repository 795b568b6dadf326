import pytest
from django.contrib.auth import get_user_model
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient


@pytest.mark.django_db
def test_role_controls_super_admin_flag():
    User = get_user_model()
    brand_admin = User.objects.create_user(username="alice", email="alice@example.com", password="pass1234")
    operator = User.objects.create_user(
        username="ops",
        email="ops@example.com",
        password="pass1234",
        role=User.Role.SUPER_ADMIN,
    )
    superuser = User.objects.create_superuser(username="root", email="root@example.com", password="pass1234")

    assert brand_admin.role == User.Role.BRAND_ADMIN
    assert not brand_admin.is_super_admin
    assert operator.is_super_admin
    assert superuser.is_super_admin


@pytest.mark.django_db
def test_bearer_token_authenticates_api_requests():
    user = get_user_model().objects.create_user(username="alice", email="alice@example.com", password="pass1234")
    token = Token.objects.create(user=user)

    client = APIClient()
    anonymous = client.get("/api/subscription-plans/")
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.key}")
    authenticated = client.get("/api/subscription-plans/")

    assert anonymous.status_code == 401
    assert anonymous["WWW-Authenticate"] == "Bearer"
    assert authenticated.status_code == 200
