import pytest

from inventario.core.errors import FormError
from inventario.services import forms


def test_parse_number_accepts_comma_decimal():
    assert forms.parse_number({"precio": " 12,5 "}, "precio", "Precio") == pytest.approx(12.5)
    assert forms.parse_number({"precio": ""}, "precio", "Precio") is None
    assert forms.parse_number({}, "precio", "Precio") is None


def test_parse_number_rejects_garbage_with_field_label():
    with pytest.raises(FormError) as excinfo:
        forms.parse_number({"ram": "mucha"}, "ram", "RAM")
    assert str(excinfo.value) == 'Introduce un valor numerico valido en "RAM".'


@pytest.mark.parametrize("raw", ["inf", "-Infinity", "nan", "1e999", "1_000"])
def test_parse_number_rejects_non_finite_and_underscored_values(raw):
    with pytest.raises(FormError) as excinfo:
        forms.parse_number({"precio": raw}, "precio", "Precio")
    assert str(excinfo.value) == 'Introduce un valor numerico valido en "Precio".'


def test_parse_int_truncates_decimals():
    assert forms.parse_int({"fabricante_id": "7,9"}, "fabricante_id", "Fabricante") == 7


def test_parse_tristate():
    assert forms.parse_tristate({"x": "true"}, "x") is True
    assert forms.parse_tristate({"x": "FALSE"}, "x") is False
    assert forms.parse_tristate({"x": ""}, "x") is None
    assert forms.parse_tristate({}, "x") is None


def test_parse_equipo_form_maps_fields():
    payload, actuaciones = forms.parse_equipo_form(
        {
            "nombre": " PC-01 ",
            "tipo": "sobremesa",
            "precio_compra": "799,99",
            "en_garantia": "true",
            "usuario_id": "4",
            "admite_update": "false",
            "observaciones": "   ",
            "actuaciones_count": "0",
        }
    )

    assert payload.nombre == "PC-01"
    assert payload.precio_compra == pytest.approx(799.99)
    assert payload.en_garantia is True
    assert payload.usuario_id == 4
    assert payload.admite_update is False
    assert payload.al_garbigune is None
    assert payload.observaciones is None
    assert actuaciones == []


def test_en_garantia_needs_explicit_true():
    payload, _ = forms.parse_equipo_form({"en_garantia": "on"})
    assert payload.en_garantia is False


def test_actuaciones_skip_blank_rows_and_keep_ids():
    items = forms.parse_actuaciones(
        {
            "actuaciones_count": "2",
            "actuaciones_0_id": "15",
            "actuaciones_0_tipo": "reparacion",
            "actuaciones_0_coste": "30,5",
            "actuaciones_1_tipo": "",
        }
    )

    assert len(items) == 1
    assert items[0].id == 15
    assert items[0].coste == pytest.approx(30.5)


@pytest.mark.parametrize(
    "form, message",
    [
        ({"actuaciones_count": "-1"}, "El numero de actuaciones indicado es invalido."),
        ({"actuaciones_count": "abc"}, "El numero de actuaciones indicado es invalido."),
        (
            {"actuaciones_count": "1", "actuaciones_0_descripcion": "Cambio de disco"},
            "La actuacion 1 debe incluir un tipo.",
        ),
        (
            {"actuaciones_count": "1", "actuaciones_0_tipo": "Magia"},
            "Selecciona un tipo valido para la actuacion 1.",
        ),
    ],
)
def test_actuaciones_errors(form, message):
    with pytest.raises(FormError) as excinfo:
        forms.parse_actuaciones(form)
    assert str(excinfo.value) == message


def test_parse_switch_form_defaults_warranty_to_false():
    payload = forms.parse_switch_form({"nombre": "Core", "puertos_totales": "24"})
    assert payload.en_garantia is False
    assert payload.puertos_totales == 24


def test_switch_ports_form_reads_connection_selector():
    changes = forms.parse_switch_ports_form(
        {
            "puerto_1_equipo_id": "equipo:abc",
            "puerto_1_vlan": "10",
            "puerto_1_poe": "on",
            "puerto_2_equipo_id": "switch:7",
            "puerto_2_velocidad": "1000",
            "puerto_3_id": "33",
        },
        switch_id=5,
        puertos_totales=3,
    )

    first, second = changes.upserts
    assert (first.numero, first.equipo_id, first.vlan, first.poe) == (1, "abc", 10, True)
    assert (second.numero, second.switch_conectado_id, second.velocidad_mbps) == (2, 7, 1000)
    assert second.equipo_id is None
    assert all(port.switch_id == 5 for port in changes.upserts)
    assert changes.delete_ids == [33]


def test_switch_ports_form_accepts_bare_equipo_id():
    changes = forms.parse_switch_ports_form({"puerto_1_equipo_id": "uuid-1"}, 1, 1)
    assert changes.upserts[0].equipo_id == "uuid-1"


def test_switch_ports_form_falls_back_to_hidden_total():
    changes = forms.parse_switch_ports_form({"puertos_totales": "2", "puerto_2_nombre": "Uplink"}, 1)
    assert [port.numero for port in changes.upserts] == [2]


@pytest.mark.parametrize(
    "form, message",
    [
        ({"puertos_totales": "0"}, "El número total de puertos indicado no es válido."),
        ({"puertos_totales": "1", "puerto_1_vlan": "x"}, "La VLAN indicada para el puerto 1 no es válida."),
        ({"puertos_totales": "1", "puerto_1_velocidad": "-5"}, "La velocidad indicada para el puerto 1 no es válida."),
        ({"puertos_totales": "1", "puerto_1_equipo_id": "switch:"}, "El switch seleccionado para el puerto 1 no es válido."),
    ],
)
def test_switch_ports_form_errors(form, message):
    with pytest.raises(FormError) as excinfo:
        forms.parse_switch_ports_form(form, 1)
    assert str(excinfo.value) == message


OWNERS = {100: 1, 200: 2}


def test_patchpanel_ports_form_links_switch_ports():
    changes = forms.parse_patchpanel_ports_form(
        {
            "puerto_1_switch_id": "1",
            "puerto_1_puerto_switch_id": "100",
            "puerto_1_etiqueta": "A1",
            "puerto_2_id": "8",
        },
        patchpanel_id=3,
        puertos_totales=2,
        port_owner=OWNERS,
    )

    assert len(changes.upserts) == 1
    port = changes.upserts[0]
    assert (port.patchpanel_id, port.numero, port.puerto_switch_id, port.etiqueta) == (3, 1, 100, "A1")
    assert changes.delete_ids == [8]


@pytest.mark.parametrize(
    "form, message",
    [
        ({"puerto_1_switch_id": "1"}, "Selecciona un puerto del switch para el puerto 1."),
        ({"puerto_1_puerto_switch_id": "100"}, "Selecciona un switch para el puerto 1."),
        (
            {"puerto_1_switch_id": "1", "puerto_1_puerto_switch_id": "999"},
            "El puerto seleccionado para el puerto 1 no existe.",
        ),
        (
            {"puerto_1_switch_id": "1", "puerto_1_puerto_switch_id": "200"},
            "El puerto seleccionado para el puerto 1 no pertenece al switch elegido.",
        ),
    ],
)
def test_patchpanel_ports_form_errors(form, message):
    with pytest.raises(FormError) as excinfo:
        forms.parse_patchpanel_ports_form(form, 3, 1, OWNERS)
    assert str(excinfo.value) == message
