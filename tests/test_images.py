from datetime import datetime, timezone
from io import BytesIO

import pytest
from starlette.datastructures import Headers, UploadFile

from inventario.core.errors import StoreError
from inventario.schemas.pantalla import PantallaPayload
from inventario.services.images import (
    MAX_IMAGE_BYTES,
    ImageFile,
    ImageValidationError,
    create_pantalla_with_photo,
    ensure_image_file_is_valid,
    find_pantalla_image,
    remove_pantalla_images,
    sanitize_path,
    thumbnail_url,
    upload_pantalla_image,
)

PNG = ImageFile(content=b"\x89PNG data", content_type="image/png", filename="foto.png")


@pytest.mark.parametrize(
    "image, message",
    [
        (ImageFile(b"x", "application/pdf"), "El archivo seleccionado no es una imagen."),
        (ImageFile(b"x", "image/tiff"), "Formato de imagen no soportado. Usa JPG, PNG, WEBP o GIF."),
        (ImageFile(b"", "image/png"), "La imagen seleccionada esta vacia."),
        (ImageFile(b"x" * (MAX_IMAGE_BYTES + 1), "image/png"), "La imagen supera el tamano maximo de 5 MB."),
    ],
)
def test_invalid_images_are_rejected(image, message):
    with pytest.raises(ImageValidationError) as excinfo:
        ensure_image_file_is_valid(image)
    assert str(excinfo.value) == message


def test_from_upload_ignores_empty_file_inputs():
    empty = UploadFile(file=BytesIO(b""), filename="", headers=Headers({"content-type": "application/octet-stream"}))
    assert ImageFile.from_upload(empty) is None
    assert ImageFile.from_upload("") is None

    upload = UploadFile(file=BytesIO(b"gif"), filename="a.gif", headers=Headers({"content-type": "image/GIF"}))
    image = ImageFile.from_upload(upload)
    assert image.content == b"gif"
    assert image.content_type == "image/gif"


def test_upload_uses_timestamped_path(backend, store):
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    path = upload_pantalla_image(store, "fotos", 7, PNG, now=now)

    assert path == f"pantallas/7/{int(now.timestamp() * 1000)}.png"
    assert backend.calls[-1]["headers"]["x-upsert"] == "true"


def test_find_pantalla_image_picks_newest_file(backend, store):
    backend.on(
        "POST",
        "/storage/v1/object/list/fotos",
        json_body=[
            {"name": "1700.png", "id": "x"},
            {"name": "1800.jpg", "id": "y"},
            {"name": "carpeta", "id": None},
        ],
    )

    assert find_pantalla_image(store, "fotos", 7) == "pantallas/7/1800.jpg"
    assert backend.calls[-1]["json"]["prefix"] == "pantallas/7"


def test_thumbnail_url_points_to_the_proxy():
    assert thumbnail_url("pantallas/7/1.png") == "/api/storage/image?path=pantallas%2F7%2F1.png"
    assert thumbnail_url(None) is None


def test_sanitize_path():
    assert sanitize_path(" /pantallas/1/a.png ") == "pantallas/1/a.png"
    assert sanitize_path("../secret") is None
    assert sanitize_path("  ") is None
    assert sanitize_path(None) is None


def test_remove_images_logs_store_failures(backend, store):
    backend.on("POST", "/storage/v1/object/list/fotos", status=500, json_body={"error": "boom"})

    remove_pantalla_images(store, "fotos", 3)

    assert backend.find("DELETE", "/storage/v1/object/fotos") == []


def test_remove_images_deletes_every_listed_file(backend, store):
    backend.on("POST", "/storage/v1/object/list/fotos", json_body=[{"name": "1.png", "id": "a"}])

    remove_pantalla_images(store, "fotos", 3)

    assert backend.find("DELETE", "/storage/v1/object/fotos")[0]["json"] == {"prefixes": ["pantallas/3/1.png"]}


def test_create_with_photo_rolls_back_on_upload_failure(backend, store):
    backend.on("POST", "/rest/v1/pantallas", status=201, json_body=[{"id": 42}])
    backend.on("POST", "/storage/v1/object/fotos/pantallas/42/", status=500, json_body={"error": "down"}, prefix=True)

    with pytest.raises(StoreError) as excinfo:
        create_pantalla_with_photo(store, "fotos", PantallaPayload(modelo="P2419H"), PNG)

    assert str(excinfo.value).startswith("La pantalla no se pudo crear porque falló la subida de la foto")
    assert excinfo.value.status_code == 500
    delete = backend.find("DELETE", "/rest/v1/pantallas")[0]
    assert delete["params"] == {"id": "eq.42"}


def test_create_with_invalid_photo_creates_nothing(backend, store):
    with pytest.raises(ImageValidationError):
        create_pantalla_with_photo(store, "fotos", PantallaPayload(), ImageFile(b"x", "text/plain"))
    assert backend.calls == []


def test_create_without_photo_only_inserts(backend, store):
    backend.on("POST", "/rest/v1/pantallas", status=201, json_body=[{"id": 5}])

    assert create_pantalla_with_photo(store, "fotos", PantallaPayload(), None) == 5
    assert [call["path"] for call in backend.calls] == ["/rest/v1/pantallas"]
