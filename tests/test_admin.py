import bcrypt
import pytest

from inventario.core.config import AppSettings
from inventario.deps.admin import AdminGateUnavailable, verify_admin_password


def settings(**overrides):
    values = {"ADMIN_LOCAL_PASSWORD": "", "ADMIN_PASSWORD_HASH": ""}
    values.update(overrides)
    return AppSettings(**values)


def test_plain_password_comparison():
    configured = settings(ADMIN_LOCAL_PASSWORD="secreto")

    assert verify_admin_password("secreto", configured) is True
    assert verify_admin_password(" secreto ", configured) is True
    assert verify_admin_password("otro", configured) is False


def test_hash_takes_precedence_over_plain_password():
    hashed = bcrypt.hashpw(b"desde-hash", bcrypt.gensalt(rounds=4)).decode()
    configured = settings(ADMIN_LOCAL_PASSWORD="secreto", ADMIN_PASSWORD_HASH=hashed)

    assert verify_admin_password("desde-hash", configured) is True
    assert verify_admin_password("secreto", configured) is False


def test_invalid_hash_never_matches():
    assert verify_admin_password("x", settings(ADMIN_PASSWORD_HASH="not-a-hash")) is False


def test_missing_configuration_is_unavailable():
    with pytest.raises(AdminGateUnavailable, match="Servicio no disponible"):
        verify_admin_password("x", settings(ADMIN_LOCAL_PASSWORD="   "))


@pytest.mark.parametrize("provided", ["", "   ", None, 1234])
def test_blank_or_non_text_password_is_required(provided):
    with pytest.raises(ValueError, match="Contraseña requerida"):
        verify_admin_password(provided, settings(ADMIN_LOCAL_PASSWORD="secreto"))


def test_verify_endpoint_status_codes(client):
    assert client.post("/api/admin-local/verify", json={}).json() == {"ok": False, "error": "Contraseña requerida"}

    wrong = client.post("/api/admin-local/verify", json={"password": "nope"})
    assert wrong.status_code == 401
    assert wrong.json() == {"ok": False, "error": "Contraseña incorrecta"}

    ok = client.post("/api/admin-local/verify", json={"password": "secreto"})
    assert ok.status_code == 200
    assert ok.json() == {"ok": True}


def test_verify_endpoint_without_configured_password(client, env_settings):
    from inventario.core.config import get_settings

    env_settings.setenv("ADMIN_LOCAL_PASSWORD", "")
    get_settings.cache_clear()

    response = client.post("/api/admin-local/verify", json={"password": "x"})

    assert response.status_code == 500
    assert response.json()["error"] == "Servicio no disponible"


def test_malformed_body_counts_as_missing_password(client):
    response = client.post("/api/admin-local/verify", content=b"not json", headers={"content-type": "application/json"})
    assert response.status_code == 400


def test_login_page_marks_session_and_redirects(client):
    response = client.post("/acceso", data={"password": "secreto", "next": "/switches/nuevo"}, follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/switches/nuevo"
    assert client.get("/switches/nuevo", headers={"accept": "text/html"}, follow_redirects=False).status_code == 200


def test_login_page_rejects_external_redirects(client):
    response = client.post("/acceso", data={"password": "secreto", "next": "//evil.test"}, follow_redirects=False)
    assert response.headers["location"] == "/"


def test_login_page_shows_error_for_wrong_password(client):
    response = client.post("/acceso", data={"password": "mal"})
    assert response.status_code == 401
    assert "Contraseña incorrecta" in response.text


def test_logout_clears_the_session(admin_client):
    admin_client.get("/salir", follow_redirects=False)
    response = admin_client.get("/equipos/nuevo", headers={"accept": "text/html"}, follow_redirects=False)
    assert response.status_code == 302
