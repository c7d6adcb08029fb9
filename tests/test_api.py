import httpx
import pytest

from inventario.store import RestStore, get_store, get_store_or_none

HTML = {"accept": "text/html"}


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_responses_carry_request_id_and_security_headers(client):
    response = client.get("/health", headers={"x-request-id": "abc123"})

    assert response.headers["x-request-id"] == "abc123"
    assert response.headers["x-content-type-options"] == "nosniff"


def test_edit_pages_redirect_to_login_without_session(client):
    response = client.get("/equipos/nuevo?tipo=portatil", headers=HTML, follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/acceso?next=%2Fequipos%2Fnuevo%3Ftipo%3Dportatil"


def test_api_delete_needs_admin_session(client, backend):
    response = client.delete("/api/equipos/abc")

    assert response.status_code == 401
    assert response.json() == {"code": "http_error", "message": "Contraseña requerida"}
    assert backend.calls == []


def test_admin_can_delete_equipo(admin_client, backend):
    response = admin_client.delete("/api/equipos/abc")

    assert response.json() == {"success": True}
    assert backend.find("DELETE", "/rest/v1/equipos")[0]["params"] == {"id": "eq.abc"}


def test_delete_equipo_reports_store_failures(admin_client, backend):
    backend.on("DELETE", "/rest/v1/equipos", status=409, json_body={"message": "fk"})

    response = admin_client.delete("/api/equipos/abc")

    assert response.status_code == 500
    assert response.json()["error"].startswith("Error al eliminar equipos: 409")


def test_delete_pantalla_rejects_non_numeric_ids(admin_client, backend):
    response = admin_client.delete("/api/pantallas/abc")

    assert response.status_code == 400
    assert response.json() == {"error": "Identificador de pantalla no valido."}
    assert backend.calls == []


def test_delete_pantalla_removes_its_photos(admin_client, backend):
    backend.on("POST", "/storage/v1/object/list/fotos", json_body=[{"name": "1.png", "id": "x"}])

    response = admin_client.delete("/api/pantallas/9")

    assert response.json() == {"success": True}
    assert backend.find("DELETE", "/rest/v1/pantallas")[0]["params"] == {"id": "eq.9"}
    assert backend.find("DELETE", "/storage/v1/object/fotos")[0]["json"] == {"prefixes": ["pantallas/9/1.png"]}


def test_storage_proxy_rejects_bad_paths(client):
    assert client.get("/api/storage/image").status_code == 400
    response = client.get("/api/storage/image", params={"path": "../x"})
    assert response.json() == {"error": "Invalid path"}


def test_storage_proxy_streams_objects(client, backend):
    backend.on(
        "GET",
        "/storage/v1/object/fotos/pantallas/1/a.png",
        content=b"PNGDATA",
        headers={"content-type": "image/png"},
    )

    response = client.get("/api/storage/image", params={"path": "/pantallas/1/a.png"})

    assert response.status_code == 200
    assert response.content == b"PNGDATA"
    assert response.headers["content-type"] == "image/png"
    assert response.headers["cache-control"] == "public, max-age=3600"


def test_storage_proxy_maps_missing_objects(client, backend):
    backend.on("GET", "/storage/v1/object/fotos/pantallas/1/a.png", status=404, json_body={"error": "nope"})

    response = client.get("/api/storage/image", params={"path": "pantallas/1/a.png"})

    assert response.status_code == 404
    assert response.json() == {"error": "Object not found"}


def test_storage_proxy_without_configuration(client):
    def no_store():
        yield None

    client.app.dependency_overrides[get_store_or_none] = no_store

    response = client.get("/api/storage/image", params={"path": "pantallas/1/a.png"})

    assert response.status_code == 500
    assert response.json() == {"error": "Supabase configuration missing"}


def test_assistant_requires_api_key(client):
    response = client.post("/api/ai", json={"prompt": "hola"})

    assert response.status_code == 500
    assert "OPENAI_API_KEY" in response.json()["message"]


def test_assistant_rejects_empty_prompts(client, env_settings):
    from inventario.core.config import get_settings

    env_settings.setenv("OPENAI_API_KEY", "sk-test")
    get_settings.cache_clear()

    response = client.post("/api/ai", json={"prompt": "   "})

    assert response.status_code == 400
    assert response.json() == {"message": "El prompt no puede estar vacio."}


def test_assistant_forwards_the_answer(client, env_settings, monkeypatch):
    from inventario.core.config import get_settings
    from inventario.routers import api_ai
    from inventario.schemas.assistant import AssistantAnswer

    env_settings.setenv("OPENAI_API_KEY", "sk-test")
    get_settings.cache_clear()
    seen = {}

    async def fake_ask(prompt, equipos, settings):
        seen["prompt"] = prompt
        seen["equipos"] = equipos
        return AssistantAnswer(filters={"tipo": "portatil"}, highlights=[], summary="Hecho")

    monkeypatch.setattr(api_ai, "ask_assistant", fake_ask)

    response = client.post("/api/ai", json={"prompt": " viejos ", "contexto": {"equipos": [{"id": "a"}]}})

    assert response.status_code == 200
    assert response.json()["summary"] == "Hecho"
    assert seen["prompt"] == "viejos"
    assert seen["equipos"] == [{"id": "a"}]


def test_topology_api_validates_orientation(client):
    assert client.get("/api/reportes/switches/grafico", params={"orientation": "bad"}).status_code == 400

    layout = client.get("/api/reportes/switches/grafico", params={"orientation": "rows"}).json()
    assert layout["nodes"] == []


def test_store_errors_become_bad_gateway(client, backend):
    backend.on("GET", "/rest/v1/equipos", status=500, json_body={"message": "down"})

    response = client.get("/api/equipos")

    assert response.status_code == 502
    assert response.json()["code"] == "store_error"


def test_public_pages_render(client):
    for path in ("/", "/switches", "/patchpanels", "/reportes/ips", "/reportes/switches", "/reportes/switches/grafico"):
        response = client.get(path, headers=HTML)
        assert response.status_code == 200, path
        assert "text/html" in response.headers["content-type"]


def test_create_equipo_redirects_to_edit_page(admin_client, backend):
    backend.on("POST", "/rest/v1/equipos", status=201, json_body=[{"id": "nuevo-1"}])

    response = admin_client.post(
        "/equipos/nuevo?from=tipo%3Dportatil",
        data={"nombre": "PC-07", "tipo": "portatil", "precio_compra": "799,90", "en_garantia": "true"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/equipos/nuevo-1/editar?from=tipo%3Dportatil"
    sent = backend.find("POST", "/rest/v1/equipos")[0]["json"]
    assert sent["nombre"] == "PC-07"
    assert sent["precio_compra"] == 799.9
    assert sent["en_garantia"] is True


def test_create_equipo_form_errors_rerender_the_form(admin_client, backend):
    response = admin_client.post("/equipos/nuevo", data={"nombre": "PC-07", "ram": "mucha"})

    assert response.status_code == 400
    assert "Introduce un valor numerico valido en &#34;RAM&#34;." in response.text
    assert 'value="PC-07"' in response.text
    assert backend.find("POST", "/rest/v1/equipos") == []


def test_edit_missing_equipo_is_not_found(admin_client):
    response = admin_client.get("/equipos/falta/editar")
    assert response.status_code == 404


def test_switch_ports_are_saved_and_cleared(admin_client, backend):
    backend.on(
        "GET",
        "/rest/v1/switches",
        json_body=[
            {
                "id": 3,
                "nombre": "Core",
                "puertos_totales": 2,
                "puertos": [{"id": 31, "switch_id": 3, "numero": 2, "nombre": "viejo"}],
            }
        ],
    )

    response = admin_client.post(
        "/switches/3/puertos",
        data={
            "puerto_1_nombre": "Uplink",
            "puerto_1_equipo_id": "switch:4",
            "puerto_1_velocidad": "1000",
            "puerto_2_id": "31",
        },
    )

    assert response.status_code == 200
    assert "Puertos guardados correctamente." in response.text
    assert backend.find("DELETE", "/rest/v1/switch_puertos")[0]["params"] == {"id": "in.(31)"}
    upserted = backend.find("POST", "/rest/v1/switch_puertos")[0]["json"]
    assert upserted == [
        {
            "switch_id": 3,
            "numero": 1,
            "nombre": "Uplink",
            "equipo_id": None,
            "switch_conectado_id": 4,
            "vlan": None,
            "velocidad_mbps": 1000,
            "poe": False,
            "observaciones": None,
        }
    ]


def test_switch_ports_form_errors(admin_client, backend):
    backend.on("GET", "/rest/v1/switches", json_body=[{"id": 3, "nombre": "Core", "puertos_totales": 1}])

    response = admin_client.post("/switches/3/puertos", data={"puerto_1_vlan": "-4"})

    assert response.status_code == 400
    assert "La VLAN indicada para el puerto 1 no es válida." in response.text
    assert backend.find("POST", "/rest/v1/switch_puertos") == []


def test_topology_api_returns_positioned_nodes(client, backend):
    backend.on(
        "GET",
        "/rest/v1/switches",
        json_body=[{"id": 1, "nombre": "Core", "puertos": [{"id": 5, "numero": 1, "equipo_id": "a", "equipo": {"nombre": "PC-01"}}]}],
    )

    layout = client.get("/api/reportes/switches/grafico").json()

    assert {node["id"] for node in layout["nodes"]} == {"switch-1", "equipo-a"}
    assert len(layout["links"]) == 1


def test_unknown_routes_use_the_error_envelope(client):
    response = client.get("/api/nada")
    assert response.status_code == 404
    assert response.json()["code"] == "http_error"


def _patchpanel_backend(backend):
    backend.on(
        "GET",
        "/rest/v1/patchpanels",
        json_body=[{"id": 2, "nombre": "PP-1", "puertos_totales": 2, "puertos": [{"id": 8, "numero": 2, "etiqueta": "B2"}]}],
    )
    backend.on("GET", "/rest/v1/switches", json_body=[{"id": 3, "nombre": "Core"}, {"id": 4, "nombre": "Planta"}])
    backend.on(
        "GET",
        "/rest/v1/switch_puertos",
        json_body=[{"id": 100, "switch_id": 3, "numero": 1}, {"id": 101, "switch_id": 4, "numero": 1}],
    )


def test_patchpanel_ports_are_saved(admin_client, backend):
    _patchpanel_backend(backend)

    response = admin_client.post(
        "/patchpanels/2/puertos",
        data={"puerto_1_switch_id": "3", "puerto_1_puerto_switch_id": "100", "puerto_1_etiqueta": "A1", "puerto_2_id": "8"},
    )

    assert response.status_code == 200
    assert "Puertos guardados correctamente." in response.text
    assert backend.find("DELETE", "/rest/v1/patchpanel_puertos")[0]["params"] == {"id": "in.(8)"}
    assert backend.find("POST", "/rest/v1/patchpanel_puertos")[0]["json"] == [
        {"patchpanel_id": 2, "numero": 1, "puerto_switch_id": 100, "etiqueta": "A1", "observaciones": None}
    ]


def test_patchpanel_port_must_belong_to_the_switch(admin_client, backend):
    _patchpanel_backend(backend)

    response = admin_client.post(
        "/patchpanels/2/puertos",
        data={"puerto_1_switch_id": "4", "puerto_1_puerto_switch_id": "100"},
    )

    assert response.status_code == 400
    assert "no pertenece al switch elegido." in response.text
    assert backend.find("POST", "/rest/v1/patchpanel_puertos") == []


@pytest.fixture()
def unreachable(admin_client):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    def store():
        return RestStore("https://db.test", "anon-key", client=httpx.Client(transport=httpx.MockTransport(refuse)))

    admin_client.app.dependency_overrides[get_store] = store
    admin_client.app.dependency_overrides[get_store_or_none] = store
    return admin_client


def test_unreachable_store_on_pages_uses_the_error_envelope(unreachable):
    response = unreachable.get("/reportes/ips", headers=HTML)

    assert response.status_code == 502
    assert response.json()["code"] == "store_error"


def test_unreachable_store_on_image_proxy(unreachable):
    response = unreachable.get("/api/storage/image", params={"path": "pantallas/1/a.png"})

    assert response.status_code == 500
    assert response.json() == {"error": "Unexpected error"}


def test_unreachable_store_on_delete(unreachable):
    response = unreachable.delete("/api/equipos/abc")

    assert response.status_code == 500
    assert response.json()["error"] == "Error al eliminar equipos: connection refused"


def test_unreachable_store_on_forms_rerenders_with_the_message(unreachable):
    response = unreachable.post("/switches/nuevo", data={"nombre": "Core"})

    assert response.status_code == 400
    assert "Error al crear switches: connection refused" in response.text
    assert 'value="Core"' in response.text
