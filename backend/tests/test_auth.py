from datetime import timedelta

from conftest import PASSWORD, auth
from app.utils.auth_utils import create_access_token, create_refresh_token
from skillconnect.core.config import settings

REGISTER = "/api/v1/auth/register"


def _form(**overrides):
    form = {
        "username": "juan",
        "first_name": "Juan",
        "last_name": "Dela Cruz",
        "email": "Juan@Example.com",
        "phone": "09171234567",
        "address": "Poblacion",
        "birthdate": "1995-02-14",
        "password": "longenough1",
        "confirm_password": "longenough1",
        "role": "Community Member",
    }
    form.update(overrides)
    return form


def test_health_endpoints(client):
    assert client.get("/healthz").json()["status"] == "ok"
    assert client.get("/api/v1/ping").status_code == 200


def test_register_community_member(client):
    response = client.post(REGISTER, data=_form())

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "juan@example.com"
    assert body["user"]["role"] == "Community Member"
    assert "password" not in body["user"]
    assert settings.COOKIE_NAME in response.cookies

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.json()["user"]["username"] == "juan"


def test_register_validation(client):
    assert client.post(REGISTER, data=_form(confirm_password="different1")).status_code == 400
    assert client.post(REGISTER, data=_form(password="short", confirm_password="short")).status_code == 400
    assert client.post(REGISTER, data=_form(role="Admin")).status_code == 400
    missing = client.post(REGISTER, data=_form(address=""))
    assert missing.status_code == 400
    assert "address" in missing.json()["message"]


def test_register_duplicates_conflict(client):
    assert client.post(REGISTER, data=_form()).status_code == 201
    assert client.post(REGISTER, data=_form(email="other@example.com", phone="0999")).status_code == 409
    assert client.post(REGISTER, data=_form(username="other", phone="0999")).status_code == 409
    response = client.post(REGISTER, data=_form(username="other", email="other@example.com"))
    assert response.status_code == 409
    assert response.json()["message"] == "Phone number already exists"


def test_provider_registration_needs_image_id(client, asset_store):
    provider = _form(role="Service Provider", skills="Plumbing, Carpentry")
    assert client.post(REGISTER, data=provider).status_code == 400

    not_image = client.post(REGISTER, data=provider, files={"valid_id": ("id.pdf", b"%PDF", "application/pdf")})
    assert not_image.status_code == 400

    response = client.post(REGISTER, data=provider, files={"valid_id": ("id.png", b"\x89PNG", "image/png")})
    assert response.status_code == 201
    user = response.json()["user"]
    assert user["valid_id"] == "valid-ids/id.png"
    assert user["skills"] == ["plumbing", "carpentry"]
    assert user["is_applying_provider"] is True
    assert user["verified"] is False
    assert asset_store.uploads == ["valid-ids/id.png"]


def test_bootstrap_admin(client, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAIL", "boss@example.com")
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", "bootstrap-pass")

    response = client.post(
        REGISTER,
        data=_form(email="boss@example.com", password="bootstrap-pass", confirm_password="bootstrap-pass"),
    )

    assert response.status_code == 201
    assert response.json()["user"]["role"] == "Admin"


def test_login_and_logout(client, make_user):
    user = make_user()

    bad = client.post("/api/v1/auth/login", json={"email": user["email"], "password": "wrong-password"})
    assert bad.status_code == 400
    assert bad.json() == {"success": False, "message": "Invalid email or password!"}

    good = client.post("/api/v1/auth/login", json={"email": user["email"], "password": PASSWORD})
    assert good.status_code == 200
    assert client.get("/api/v1/auth/me").status_code == 200  # cookie session

    client.post("/api/v1/auth/logout")
    assert client.get("/api/v1/auth/me").status_code == 401


def test_banned_user_cannot_login(client, make_user):
    user = make_user(banned=True)
    response = client.post("/api/v1/auth/login", json={"email": user["email"], "password": PASSWORD})
    assert response.status_code == 403


def test_refresh_token(client, make_user):
    user = make_user()

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": create_refresh_token(user)})
    assert response.status_code == 200
    assert response.json()["token"]

    # An access token is not accepted as a refresh token
    wrong_type = client.post("/api/v1/auth/refresh", json={"refresh_token": create_access_token(user)})
    assert wrong_type.status_code == 401


def test_expired_and_garbage_tokens(client, make_user):
    user = make_user()
    expired = create_access_token(user, expires_delta=timedelta(seconds=-5))

    response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401
    assert response.json()["message"] == "Token has expired"
    assert client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nonsense"}).status_code == 401


def test_update_profile(client, make_user, asset_store):
    user = make_user()
    taken = make_user()

    conflict = client.put("/api/v1/users/profile", data={"email": taken["email"]}, headers=auth(user))
    assert conflict.status_code == 409

    response = client.put(
        "/api/v1/users/profile",
        data={"first_name": "Maria", "skills": " Welding ,, ", "role": "Admin"},
        files={"profile_pic": ("me.jpg", b"jpeg", "image/jpeg")},
        headers=auth(user),
    )
    assert response.status_code == 200
    updated = response.json()["user"]
    assert updated["first_name"] == "Maria"
    assert updated["skills"] == ["welding"]
    assert updated["role"] == "Community Member"
    assert updated["profile_pic"] == "profile-pics/me.jpg"


def test_apply_provider(client, make_user, make_provider):
    member = make_user()
    response = client.post(
        "/api/v1/users/apply-provider",
        data={"skills": "Electrical"},
        files={"certificates": ("tesda.pdf", b"%PDF", "application/pdf")},
        headers=auth(member),
    )
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["role"] == "Service Provider"
    assert user["is_applying_provider"] is True
    assert user["certificates"] == ["certificates/tesda.pdf"]

    verified = make_provider()
    again = client.post("/api/v1/users/apply-provider", data={"skills": "Electrical"}, headers=auth(verified))
    assert again.status_code == 409


def test_service_profile_and_availability(client, make_provider, make_user):
    provider = make_provider()

    response = client.put(
        "/api/v1/users/service-profile",
        json={"service": "Cleaning", "service_rate": 750, "service_description": "Whole house"},
        headers=auth(provider),
    )
    assert response.status_code == 200
    assert response.json()["service_profile"]["service_rate"] == 750

    assert client.put("/api/v1/users/service-status", json={"is_online": False}, headers=auth(provider)).json()[
        "is_online"
    ] is False
    assert client.put(
        "/api/v1/users/availability", json={"availability": "Currently Working"}, headers=auth(provider)
    ).status_code == 200
    assert client.put(
        "/api/v1/users/availability", json={"availability": "Sleeping"}, headers=auth(provider)
    ).status_code == 400
    assert client.get("/api/v1/users/service-profile", headers=auth(make_user())).status_code == 403


def test_valid_id_url_and_public_providers(client, make_provider):
    provider = make_provider(valid_id="valid-ids/id.png")
    make_provider(verified=False)
    make_provider(banned=True)

    url = client.get("/api/v1/users/valid-id", headers=auth(provider)).json()["url"]
    assert url.startswith("https://files.example.test/valid-ids/id.png")

    providers = client.get("/api/v1/users/providers").json()["providers"]
    assert [p["id"] for p in providers] == [str(provider["_id"])]
    assert "email" not in providers[0]
