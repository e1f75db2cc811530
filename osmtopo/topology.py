"""
Resolve OSM relations into polygon rings or linestring chains.

OSM represents simple polygons as closed ways, but it uses relations to
represent multipolygons and polygons with holes: the relation lists its
member ways with "outer" and "inner" roles, in no particular order and with
no guarantee that consecutive members share endpoints or run in the same
direction. Other relations (routes, for example) group member ways by
arbitrary roles into multilinestrings. For documentation, see
https://wiki.openstreetmap.org/wiki/Relation:multipolygon

Ring assembly here is greedy and never backtracks: when several member ways
could extend a ring, the first one in member order wins. Rings that cannot be
closed are abandoned and reported rather than raised.
"""

from __future__ import annotations

import logging as lg
import multiprocessing as mp
from dataclasses import dataclass
from dataclasses import field
from operator import attrgetter
from typing import TYPE_CHECKING
from typing import Callable
from typing import Union

from . import settings
from . import utils
from ._errors import TopologyError
from .trace import Trace
from .trace import trace_way

if TYPE_CHECKING:
    from .elements import Relation
    from .store import EntityStore

# label given to the role group of relation members without a role
NO_ROLE = "(no role)"


@dataclass
class Ring:
    """
    One ring traced from a multipolygon relation's member ways.

    Attributes
    ----------
    relation_id
        ID of the relation the ring belongs to.
    role
        The role shared by all the ring's member ways.
    coords
        The ring's `(lon, lat)` coordinates.
    node_ids
        The node ID of each coordinate.
    way_ids
        IDs of the ways forming the ring, in tracing order.
    ok
        Whether the ring closed on its starting node.
    """

    relation_id: int
    role: str
    coords: list[tuple[float, float]]
    node_ids: list[int]
    way_ids: list[int]
    ok: bool

    @property
    def way_id_string(self) -> str:
        """The contributing way IDs joined by "-"."""
        return "-".join(str(way_id) for way_id in self.way_ids)


@dataclass
class Chain:
    """One linestring traced from a single member way of a relation."""

    relation_id: int
    role: str
    coords: list[tuple[float, float]]
    node_ids: list[int]
    way_ids: list[int]

    @property
    def way_id_string(self) -> str:
        """The contributing way IDs joined by "-"."""
        return "-".join(str(way_id) for way_id in self.way_ids)


@dataclass
class RoleChains:
    """The chains of a multilinestring relation's members sharing one role."""

    relation_id: int
    role: str
    chains: list[Chain] = field(default_factory=list)

    @property
    def id(self) -> str:
        """Composite ID of the relation and role, like `"123-outer"`."""
        return f"{self.relation_id}-{self.role or NO_ROLE}"


@dataclass
class Resolution:
    """
    The geometries resolved from all relations of an entity store.

    Attributes
    ----------
    multipolygons
        Closed rings keyed by multipolygon relation ID. A relation whose rings
        all failed maps to an empty list.
    multilinestrings
        Role-grouped chains keyed by multilinestring relation ID.
    failed_rings
        Rings that could not be closed, excluded from `multipolygons`.
    missing_ways
        `(relation_id, way_id)` pairs for member ways absent from the store.
    """

    multipolygons: dict[int, list[Ring]] = field(default_factory=dict)
    multilinestrings: dict[int, list[RoleChains]] = field(default_factory=dict)
    failed_rings: list[Ring] = field(default_factory=list)
    missing_ways: list[tuple[int, int]] = field(default_factory=list)

    @property
    def ring_count(self) -> int:
        """Total number of closed rings."""
        return sum(len(rings) for rings in self.multipolygons.values())

    @property
    def chain_count(self) -> int:
        """Total number of chains."""
        return sum(
            len(group.chains) for groups in self.multilinestrings.values() for group in groups
        )


_Traced = Union[list[Ring], list[RoleChains]]


def _present_members(
    relation: Relation,
    store: EntityStore,
    missing: list[tuple[int, int]],
) -> list[tuple[int, str]]:
    # way members absent from the store (e.g., clipped out of an Overpass
    # extract) are set aside and reported
    members = []
    for way_id, role in relation.ways:
        if store.has_way(way_id):
            members.append((way_id, role))
        else:
            missing.append((relation.id, way_id))
            msg = f"Relation {relation.id} member way {way_id} can not be found"
            utils.log(msg, level=lg.WARNING)
    return members


def _seed_index(members: list[tuple[int, str]]) -> int:
    # prefer the first "outer" member, else fall back to the first member
    for i, (_, role) in enumerate(members):
        if role == "outer":
            return i
    return 0


def _extend_ring(
    trace: Trace,
    last_node: int,
    role: str,
    members: list[tuple[int, str]],
    store: EntityStore,
) -> int:
    """
    Extend an open ring with the first remaining member way that fits.

    The matching member is removed from `members`.

    Parameters
    ----------
    trace
        The ring's accumulated trace.
    last_node
        The ring's current open end.
    role
        The role a member must have to join this ring.
    members
        The relation's remaining `(way_id, role)` members.
    store
        The entity store.

    Returns
    -------
    last_node
        The ring's new open end.
    """
    for i, (way_id, member_role) in enumerate(members):
        if member_role != role:
            continue
        new_last = trace_way(store.ways[way_id], store.nodes, trace, last_node, append=True)
        if new_last is not None:
            del members[i]
            return new_last

    msg = f"No remaining {role!r} member way continues the ring from node {last_node}"
    raise TopologyError(msg)


def _trace_ring(
    relation_id: int,
    members: list[tuple[int, str]],
    store: EntityStore,
) -> Ring:
    seed = _seed_index(members)
    way_id, role = members.pop(seed)
    way = store.ways[way_id]

    trace = Trace()
    first_node = way.nodes[0]
    last_node = trace_way(way, store.nodes, trace)
    closed = last_node == first_node

    try:
        while not closed and len(members) > 0:
            last_node = _extend_ring(trace, last_node, role, members, store)  # type: ignore[arg-type]
            closed = last_node == first_node
    except TopologyError as e:
        msg = f"Abandoned ring of relation {relation_id} starting at way {way_id}: {e}"
        utils.log(msg, level=lg.DEBUG)
        closed = False

    return Ring(
        relation_id=relation_id,
        role=role,
        coords=trace.coords,
        node_ids=trace.node_ids,
        way_ids=trace.way_ids,
        ok=closed,
    )


def trace_multipolygon(
    relation: Relation,
    store: EntityStore,
    missing: list[tuple[int, int]] | None = None,
) -> list[Ring]:
    """
    Assemble a multipolygon relation's member ways into rings.

    Until no members remain: seed a ring with the first "outer" member (or
    the first member, if none is "outer"), then repeatedly join the first
    remaining member of the same role that shares the ring's open end, in
    either direction, until the ring closes on its starting node. If no
    member can extend the ring, the ring is abandoned and the next ring is
    seeded from the members that remain.

    Parameters
    ----------
    relation
        The relation to trace.
    store
        The entity store holding the relation's ways and nodes.
    missing
        If not None, `(relation_id, way_id)` pairs for member ways absent
        from the store are appended to it.

    Returns
    -------
    rings
        Every ring attempted, closed or not. Check each ring's `ok` flag.
    """
    if missing is None:
        missing = []
    members = _present_members(relation, store, missing)

    rings = []
    while len(members) > 0:
        rings.append(_trace_ring(relation.id, members, store))
    return rings


def trace_multilinestring(
    relation: Relation,
    store: EntityStore,
    missing: list[tuple[int, int]] | None = None,
) -> list[RoleChains]:
    """
    Trace a multilinestring relation's member ways into per-role chains.

    Members are grouped by exact role. Each member way becomes its own chain:
    unlike multipolygon rings, the ways of a role group need not connect.
    Member ways absent from the store are skipped, tolerating stale
    references in extracts not sourced from Overpass.

    Parameters
    ----------
    relation
        The relation to trace.
    store
        The entity store holding the relation's ways and nodes.
    missing
        If not None, `(relation_id, way_id)` pairs for skipped member ways
        are appended to it.

    Returns
    -------
    groups
        One group of chains per role of the members present in the store, in
        sorted role order.
    """
    if missing is None:
        missing = []
    members = _present_members(relation, store, missing)

    groups = []
    for role in sorted({role for _, role in members}):
        group = RoleChains(relation_id=relation.id, role=role)
        for way_id, member_role in members:
            if member_role != role:
                continue
            trace = Trace()
            trace_way(store.ways[way_id], store.nodes, trace)
            chain = Chain(
                relation_id=relation.id,
                role=role,
                coords=trace.coords,
                node_ids=trace.node_ids,
                way_ids=trace.way_ids,
            )
            group.chains.append(chain)
        groups.append(group)
    return groups


def _resolve_relation(
    relation: Relation,
    store: EntityStore,
    is_poly: bool,  # noqa: FBT001
) -> tuple[int, bool, _Traced, list[tuple[int, int]]]:
    missing: list[tuple[int, int]] = []
    traced: _Traced
    if is_poly:
        traced = trace_multipolygon(relation, store, missing)
    else:
        traced = trace_multilinestring(relation, store, missing)
    return relation.id, is_poly, traced, missing


def _resolve_packed(
    args: tuple[Relation, EntityStore, bool],
) -> tuple[int, bool, _Traced, list[tuple[int, int]]]:
    # unpack arguments for Pool.imap, which has no starmap variant
    return _resolve_relation(*args)


def resolve_relations(
    store: EntityStore,
    *,
    classify: Callable[[Relation], bool] | None = None,
    progress_callback: Callable[[int], None] | None = None,
    cpus: int | None = 1,
) -> Resolution:
    """
    Resolve every relation in a store into rings or chains.

    Each relation is traced as a multipolygon or a multilinestring according
    to `classify`. Rings that fail to close are recorded in the result's
    `failed_rings` rather than raised, so this always returns whatever
    succeeded. A way referencing a node missing from the store still raises a
    `DanglingReferenceError`.

    You can parallelize resolution with the `cpus` parameter: each relation
    only reads the store, so relations are traced independently, each in a
    worker holding a substore of just the ways and nodes it references.

    Parameters
    ----------
    store
        The entity store.
    classify
        Function returning True if a relation is a multipolygon. If None, use
        each relation's `is_multipolygon` property.
    progress_callback
        If not None, called with the running count of resolved relations
        every `settings.progress_interval` relations. Any exception it raises
        aborts resolution.
    cpus
        How many CPU cores to use. If None, use all available.

    Returns
    -------
    resolution
    """
    if classify is None:
        classify = attrgetter("is_multipolygon")

    # determine how many cpu cores to use
    if cpus is None:
        cpus = mp.cpu_count()
    cpus = min(cpus, mp.cpu_count())

    msg = f"Resolving {len(store.relations):,} relations with {cpus} CPUs..."
    utils.log(msg, level=lg.INFO)

    # if single-processing, resolve each relation one at a time
    if cpus == 1:
        results = []
        for count, relation in enumerate(store.relations, start=1):
            results.append(_resolve_relation(relation, store, classify(relation)))
            if progress_callback is not None and count % settings.progress_interval == 0:
                progress_callback(count)

    # if multi-processing, resolve relations in parallel, collecting results
    # in order as they arrive so progress is reported at the same interval
    else:
        args = ((rel, store.substore(rel), classify(rel)) for rel in store.relations)
        results = []
        with mp.get_context("spawn").Pool(cpus) as pool:
            for count, result in enumerate(pool.imap(_resolve_packed, args), start=1):
                results.append(result)
                if progress_callback is not None and count % settings.progress_interval == 0:
                    progress_callback(count)

    resolution = Resolution()
    for relation_id, is_poly, traced, missing in results:
        resolution.missing_ways.extend(missing)
        if is_poly:
            rings = [ring for ring in traced if isinstance(ring, Ring)]
            resolution.multipolygons[relation_id] = [ring for ring in rings if ring.ok]
            resolution.failed_rings.extend(ring for ring in rings if not ring.ok)
        else:
            groups = [group for group in traced if isinstance(group, RoleChains)]
            resolution.multilinestrings[relation_id] = groups

    if len(resolution.failed_rings) > 0:
        msg = f"{len(resolution.failed_rings):,} multipolygon ring(s) could not be closed"
        utils.log(msg, level=lg.WARNING)

    msg = (
        f"Resolved {resolution.ring_count:,} rings in {len(resolution.multipolygons):,} "
        f"multipolygons and {resolution.chain_count:,} chains in "
        f"{len(resolution.multilinestrings):,} multilinestrings"
    )
    utils.log(msg, level=lg.INFO)
    return resolution
