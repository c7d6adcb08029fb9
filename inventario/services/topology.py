"""Connection diagram between switches and what hangs off their ports.

The layout is a two band heuristic: every switch goes into one band and
every endpoint (equipo or a switch reached through a port) into the other.
Both bands are sorted by label and spread evenly; links are cubic Bézier
curves between the facing edges of the two nodes.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Optional

from ..schemas.switch import SwitchPortRecord, SwitchRecord
from .reporting import collation_key

NODE_WIDTH = 170
NODE_HEIGHT = 64
SVG_WIDTH = 1100
BAND_MARGIN = 220
MIN_EXTENT = 500
NODE_SPACING = 110
LABEL_LIFT = 10

ORIENTATIONS = ("columns", "rows")

SWITCH = "switch"
EQUIPO = "equipo"
SWITCH_LINK = "switchLink"


@dataclass(frozen=True)
class GraphNode:
    id: str
    label: str
    subtitle: Optional[str]
    type: str


@dataclass(frozen=True)
class GraphLink:
    id: str
    source: str
    target: str
    label: str


@dataclass
class Graph:
    nodes: Dict[str, GraphNode] = field(default_factory=dict)
    links: List[GraphLink] = field(default_factory=list)

    def add_node(self, node: GraphNode) -> None:
        # First writer wins; the same equipo seen from two ports stays one node.
        self.nodes.setdefault(node.id, node)


@dataclass(frozen=True)
class PositionedNode:
    id: str
    label: str
    subtitle: Optional[str]
    type: str
    x: float
    y: float

    @property
    def left(self) -> float:
        return self.x - NODE_WIDTH / 2

    @property
    def top(self) -> float:
        return self.y - NODE_HEIGHT / 2


@dataclass(frozen=True)
class PositionedLink:
    id: str
    source: str
    target: str
    label: str
    path: str
    label_x: float
    label_y: float


@dataclass
class Layout:
    width: float
    height: float
    orientation: str
    nodes: List[PositionedNode] = field(default_factory=list)
    links: List[PositionedLink] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def as_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "orientation": self.orientation,
            "nodes": [asdict(node) for node in self.nodes],
            "links": [asdict(link) for link in self.links],
        }


def _switch_label(record: SwitchRecord) -> str:
    return record.display_name


def _equipo_label(puerto: SwitchPortRecord) -> str:
    nombre = (puerto.equipo.nombre or "").strip() if puerto.equipo else ""
    if nombre:
        return nombre
    if puerto.nombre and puerto.nombre.strip():
        return puerto.nombre.strip()
    return "Puerto disponible"


def _port_label(puerto: SwitchPortRecord) -> str:
    return f"Puerto {puerto.numero}" if puerto.numero is not None else "Puerto sin número"


def build_graph(switches: Iterable[SwitchRecord]) -> Graph:
    graph = Graph()
    for record in switches:
        switch_node_id = f"switch-{record.id}"
        ubicacion = record.ubicacion.nombre.strip() if record.ubicacion and record.ubicacion.nombre else None
        graph.add_node(GraphNode(switch_node_id, _switch_label(record), ubicacion, SWITCH))

        for puerto in sorted(record.puertos, key=lambda p: p.numero or 0):
            if puerto.equipo_id and puerto.equipo:
                target = f"equipo-{puerto.equipo_id}"
                graph.add_node(GraphNode(target, _equipo_label(puerto), "Equipo", EQUIPO))
            elif puerto.switch_conectado_id and puerto.switch_conectado:
                target = f"switchlink-{puerto.switch_conectado_id}"
                nombre = (puerto.switch_conectado.nombre or "").strip() or "Switch sin nombre"
                graph.add_node(GraphNode(target, nombre, "Switch conectado", SWITCH_LINK))
            else:
                continue
            graph.links.append(
                GraphLink(
                    id=f"link-{switch_node_id}-{target}-{puerto.id}",
                    source=switch_node_id,
                    target=target,
                    label=_port_label(puerto),
                )
            )
    return graph


def _spread(nodes: List[GraphNode], extent: float, fixed: float, vertical: bool) -> List[PositionedNode]:
    spacing = extent / (len(nodes) + 1)
    placed = []
    for index, node in enumerate(nodes):
        along = spacing * (index + 1)
        x, y = (fixed, along) if vertical else (along, fixed)
        placed.append(PositionedNode(node.id, node.label, node.subtitle, node.type, x, y))
    return placed


def _route(source: PositionedNode, target: PositionedNode, orientation: str) -> tuple[str, float, float]:
    """Bézier path from the edge of ``source`` that faces ``target``'s band."""

    if orientation == "rows":
        start_y = source.y + (NODE_HEIGHT / 2 if source.type == SWITCH else -NODE_HEIGHT / 2)
        end_y = target.y + (NODE_HEIGHT / 2 if target.type == SWITCH else -NODE_HEIGHT / 2)
        offset = (end_y - start_y) / 2
        path = (
            f"M {source.x} {start_y} C {source.x} {start_y + offset}, "
            f"{target.x} {end_y - offset}, {target.x} {end_y}"
        )
        return path, (source.x + target.x) / 2, (start_y + end_y) / 2 - LABEL_LIFT

    start_x = source.x + (NODE_WIDTH / 2 if source.type == SWITCH else -NODE_WIDTH / 2)
    end_x = target.x + (NODE_WIDTH / 2 if target.type == SWITCH else -NODE_WIDTH / 2)
    offset = (end_x - start_x) / 2
    path = (
        f"M {start_x} {source.y} C {start_x + offset} {source.y}, "
        f"{end_x - offset} {target.y}, {end_x} {target.y}"
    )
    return path, (start_x + end_x) / 2, (source.y + target.y) / 2 - LABEL_LIFT


def layout_graph(graph: Graph, orientation: str = "columns") -> Layout:
    if orientation not in ORIENTATIONS:
        raise ValueError(f"unknown orientation {orientation!r}")

    switch_nodes = sorted(
        (node for node in graph.nodes.values() if node.type == SWITCH),
        key=lambda node: collation_key(node.label),
    )
    endpoint_nodes = sorted(
        (node for node in graph.nodes.values() if node.type != SWITCH),
        key=lambda node: collation_key(node.label),
    )
    extent = max(MIN_EXTENT, max(len(switch_nodes), len(endpoint_nodes), 1) * NODE_SPACING)

    if orientation == "columns":
        width, height = SVG_WIDTH, extent
        placed = _spread(switch_nodes, extent, BAND_MARGIN, True) + _spread(
            endpoint_nodes, extent, SVG_WIDTH - BAND_MARGIN, True
        )
    else:
        # Bands sit at the same distance from the edges as the columns do.
        width, height = max(SVG_WIDTH, extent), SVG_WIDTH / 2
        top = BAND_MARGIN / 2
        placed = _spread(switch_nodes, width, top, False) + _spread(
            endpoint_nodes, width, height - top, False
        )

    positions = {node.id: node for node in placed}
    links = []
    for link in graph.links:
        source = positions.get(link.source)
        target = positions.get(link.target)
        if source is None or target is None:
            continue
        path, label_x, label_y = _route(source, target, orientation)
        links.append(PositionedLink(link.id, link.source, link.target, link.label, path, label_x, label_y))

    return Layout(width=width, height=height, orientation=orientation, nodes=placed, links=links)


def build_layout(switches: Iterable[SwitchRecord], orientation: str = "columns") -> Layout:
    return layout_graph(build_graph(switches), orientation)
