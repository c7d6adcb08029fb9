import pytest

from inventario.schemas.switch import SwitchRecord
from inventario.services.topology import (
    BAND_MARGIN,
    NODE_WIDTH,
    SVG_WIDTH,
    Graph,
    GraphLink,
    GraphNode,
    build_graph,
    build_layout,
    layout_graph,
)


def make_switch(**fields):
    return SwitchRecord.model_validate(fields)


CORE = make_switch(
    id=1,
    nombre="Core",
    ubicacion={"nombre": "CPD"},
    puertos=[
        {"id": 12, "numero": 2, "switch_conectado_id": 2, "switch_conectado": {"nombre": "Planta"}},
        {"id": 11, "numero": 1, "equipo_id": "a", "equipo": {"nombre": "PC-01"}},
        {"id": 13, "numero": 3},
    ],
)
PLANTA = make_switch(
    id=2,
    modelo="GS108",
    puertos=[{"id": 21, "numero": None, "equipo_id": "a", "equipo": {"nombre": "PC-01"}}],
)


def test_graph_has_one_node_per_device_and_one_link_per_connected_port():
    graph = build_graph([CORE, PLANTA])

    assert set(graph.nodes) == {"switch-1", "switch-2", "equipo-a", "switchlink-2"}
    assert graph.nodes["switch-1"].subtitle == "CPD"
    assert graph.nodes["switch-2"].label == "GS108"
    assert [link.label for link in graph.links] == ["Puerto 1", "Puerto 2", "Puerto sin número"]


def test_columns_layout_places_bands_at_fixed_x():
    layout = build_layout([CORE, PLANTA])

    assert layout.width == SVG_WIDTH
    assert layout.height == 500
    switches = [node for node in layout.nodes if node.type == "switch"]
    endpoints = [node for node in layout.nodes if node.type != "switch"]
    assert {node.x for node in switches} == {BAND_MARGIN}
    assert {node.x for node in endpoints} == {SVG_WIDTH - BAND_MARGIN}
    # Two switches spread over 500px: 500 / 3 apart, sorted by label.
    assert [node.label for node in switches] == ["Core", "GS108"]
    assert switches[0].y == pytest.approx(500 / 3)
    assert switches[1].y == pytest.approx(1000 / 3)


def test_height_grows_with_the_larger_band():
    switches = [make_switch(id=i, nombre=f"SW{i}") for i in range(6)]
    assert build_layout(switches).height == 6 * 110


def test_links_start_on_the_facing_edge_and_lift_the_label():
    layout = build_layout([CORE])
    link = next(link for link in layout.links if link.target == "equipo-a")
    source = next(node for node in layout.nodes if node.id == "switch-1")
    target = next(node for node in layout.nodes if node.id == "equipo-a")

    start_x = source.x + NODE_WIDTH / 2
    end_x = target.x - NODE_WIDTH / 2
    assert link.path.startswith(f"M {start_x} {source.y} C ")
    assert link.path.endswith(f"{end_x} {target.y}")
    assert link.label_x == pytest.approx((start_x + end_x) / 2)
    assert link.label_y == pytest.approx((source.y + target.y) / 2 - 10)


def test_rows_layout_uses_horizontal_bands():
    layout = build_layout([CORE], "rows")

    switch = next(node for node in layout.nodes if node.type == "switch")
    endpoint = next(node for node in layout.nodes if node.type != "switch")
    assert switch.y < endpoint.y
    assert layout.width == SVG_WIDTH


def test_links_to_unknown_nodes_are_dropped():
    graph = Graph()
    graph.add_node(GraphNode("switch-1", "Core", None, "switch"))
    graph.links.append(GraphLink("l1", "switch-1", "equipo-x", "Puerto 1"))

    assert layout_graph(graph).links == []


def test_unknown_orientation_is_rejected():
    with pytest.raises(ValueError):
        layout_graph(Graph(), "diagonal")


def test_empty_input_gives_an_empty_layout():
    layout = build_layout([])
    assert layout.is_empty
    assert layout.as_dict()["nodes"] == []
