"""Trace OSM ways into coordinate sequences for assembling relation geometries."""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING

from ._errors import DanglingReferenceError

if TYPE_CHECKING:
    from .elements import Node
    from .elements import Way


@dataclass
class Trace:
    """
    Accumulate the coordinates traced from one or more chained ways.

    Every coordinate carries the ID of the node it came from, and every way
    contributing to the trace is recorded in order, for attribution.
    """

    lons: list[float] = field(default_factory=list)
    lats: list[float] = field(default_factory=list)
    node_ids: list[int] = field(default_factory=list)
    way_ids: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.node_ids)

    @property
    def coords(self) -> list[tuple[float, float]]:
        """The traced `(lon, lat)` coordinates."""
        return list(zip(self.lons, self.lats))


def trace_way(
    way: Way,
    nodes: dict[int, Node],
    trace: Trace,
    first_node: int | None = None,
    *,
    append: bool = False,
) -> int | None:
    """
    Trace a way's coordinates into `trace`, starting from `first_node`.

    The way is emitted forward if it starts at `first_node` (or if
    `first_node` is None), or in reverse if it ends there. If it does neither,
    nothing is emitted and None is returned: the way cannot extend a chain
    whose open end is `first_node`.

    Parameters
    ----------
    way
        The way to trace. Must have at least one node.
    nodes
        Nodes keyed by OSM ID, to look up coordinates.
    trace
        The accumulator to append coordinates, node IDs, and the way ID to.
    first_node
        The node the emitted sequence must start at, typically the open end of
        the chain being built. None means no constraint.
    append
        If True, skip the first emitted coordinate because it duplicates the
        last coordinate already in `trace`.

    Returns
    -------
    last_node
        ID of the way's other endpoint (the chain's new open end), or None if
        the way does not touch `first_node`.
    """
    if len(way.nodes) == 0:
        msg = f"Cannot trace way {way.id}: it has no nodes"
        raise ValueError(msg)

    if first_node is None or way.nodes[0] == first_node:
        ordered = list(way.nodes)
    elif way.nodes[-1] == first_node:
        ordered = list(reversed(way.nodes))
    else:
        return None

    # resolve every node before emitting anything so a dangling reference
    # never leaves a partial way in the trace
    missing = [node_id for node_id in ordered if node_id not in nodes]
    if len(missing) > 0:
        msg = f"Way {way.id} references node {missing[0]} which can not be found"
        raise DanglingReferenceError(msg)

    for node_id in ordered[1:] if append else ordered:
        node = nodes[node_id]
        trace.lons.append(node.lon)
        trace.lats.append(node.lat)
        trace.node_ids.append(node_id)
    trace.way_ids.append(way.id)

    return ordered[-1]
