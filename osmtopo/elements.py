"""
Model OSM nodes, ways, and relations and build them from raw XML records.

The XML walkers in `_osm_xml` collect each element's attributes and children
into transient raw records. The functions here normalize those records into
the immutable `Node`, `Way`, and `Relation` entities held by an
`EntityStore`. For the element model, see
https://wiki.openstreetmap.org/wiki/Elements
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field

# way tags pulled out of the generic tags mapping when extracting reserved tags
RESERVED_WAY_TAGS = ("highway", "name", "oneway")

# member roles that mark a relation as a multipolygon
POLYGON_ROLES = {"inner", "outer"}

# standard OSM attributes carried as metadata on every element
META_ATTRS = ("version", "timestamp", "changeset", "uid", "user")


@dataclass(frozen=True)
class Metadata:
    """Editing metadata of an OSM element, kept as the raw attribute strings."""

    version: str = ""
    timestamp: str = ""
    changeset: str = ""
    uid: str = ""
    user: str = ""


@dataclass(frozen=True)
class Node:
    """An OSM node: a point with coordinates and tags."""

    id: int
    lat: float
    lon: float
    tags: dict[str, str] = field(default_factory=dict)
    meta: Metadata = field(default_factory=Metadata)


@dataclass(frozen=True)
class Way:
    """
    An OSM way: an ordered sequence of node references.

    Coordinates are never copied into the way; they are looked up from the
    node store by ID whenever the way is traced.
    """

    id: int
    nodes: tuple[int, ...]
    tags: dict[str, str] = field(default_factory=dict)
    name: str = ""
    highway: str = ""
    oneway: bool = False
    center: tuple[float, float] | None = None
    meta: Metadata = field(default_factory=Metadata)

    @property
    def is_polygonal(self) -> bool:
        """Whether the way is closed, i.e., its first and last nodes match."""
        return len(self.nodes) > 0 and self.nodes[0] == self.nodes[-1]


@dataclass(frozen=True)
class Member:
    """A relation member: a reference to a node, way, or relation with a role."""

    ref: int
    role: str = ""
    type: str = "way"

    @property
    def is_outer(self) -> bool:
        """Whether the member's role is exactly "outer"."""
        return self.role == "outer"


@dataclass(frozen=True)
class Relation:
    """An OSM relation: a tagged, ordered list of role-labelled members."""

    id: int
    members: tuple[Member, ...] = ()
    tags: dict[str, str] = field(default_factory=dict)
    rel_type: str = ""
    center: tuple[float, float] | None = None
    meta: Metadata = field(default_factory=Metadata)

    @property
    def ways(self) -> list[tuple[int, str]]:
        """The relation's way members as `(way_id, role)` in document order."""
        return [(m.ref, m.role) for m in self.members if m.type == "way"]

    @property
    def is_multipolygon(self) -> bool:
        """
        Whether any way member has an "outer" or "inner" role.

        Not all multipolygons are tagged `type=multipolygon` (boundaries, for
        example), but they all use these roles.
        """
        return any(m.role in POLYGON_ROLES for m in self.members if m.type == "way")


@dataclass
class RawNode:
    """Transient record of a parsed `<node>` element."""

    id: int = 0
    lat: float = 0.0
    lon: float = 0.0
    tags: list[tuple[str, str]] = field(default_factory=list)
    meta: dict[str, str] = field(default_factory=dict)
    dropped_values: int = 0


@dataclass
class RawWay:
    """Transient record of a parsed `<way>` element."""

    id: int = 0
    nodes: list[int] = field(default_factory=list)
    tags: list[tuple[str, str]] = field(default_factory=list)
    center: tuple[float, float] | None = None
    meta: dict[str, str] = field(default_factory=dict)
    dropped_values: int = 0


@dataclass
class RawRelation:
    """Transient record of a parsed `<relation>` element."""

    id: int = 0
    members: list[Member] = field(default_factory=list)
    tags: list[tuple[str, str]] = field(default_factory=list)
    center: tuple[float, float] | None = None
    meta: dict[str, str] = field(default_factory=dict)
    dropped_values: int = 0


def _tags_dict(pairs: list[tuple[str, str]]) -> dict[str, str]:
    # first occurrence of a repeated key wins
    tags: dict[str, str] = {}
    for key, value in pairs:
        tags.setdefault(key, value)
    return tags


def build_node(raw: RawNode) -> Node:
    """
    Build a node from its raw record.

    Parameters
    ----------
    raw
        The raw node record.

    Returns
    -------
    node
    """
    return Node(
        id=raw.id,
        lat=raw.lat,
        lon=raw.lon,
        tags=_tags_dict(raw.tags),
        meta=Metadata(**raw.meta),
    )


def build_way(raw: RawWay, *, extract_reserved_tags: bool) -> Way:
    """
    Build a way from its raw record.

    The `highway` tag's value is treated as the way's thematic type and the
    `name` tag's value as its display name. The way is flagged as oneway only
    if it has the exact tag `oneway=yes`: qualified variants such as
    `oneway:bicycle=no` are left as plain tags.

    Parameters
    ----------
    raw
        The raw way record.
    extract_reserved_tags
        If True, remove the `highway`, `name`, and consumed `oneway=yes` tags
        from the way's tags mapping after copying them to the way's
        attributes.

    Returns
    -------
    way
    """
    tags = _tags_dict(raw.tags)
    name = tags.get("name", "")
    highway = tags.get("highway", "")
    oneway = tags.get("oneway") == "yes"

    if extract_reserved_tags:
        tags.pop("name", None)
        tags.pop("highway", None)
        if oneway:
            tags.pop("oneway")

    return Way(
        id=raw.id,
        nodes=tuple(raw.nodes),
        tags=tags,
        name=name,
        highway=highway,
        oneway=oneway,
        center=raw.center,
        meta=Metadata(**raw.meta),
    )


def build_relation(raw: RawRelation) -> Relation:
    """
    Build a relation from its raw record.

    Parameters
    ----------
    raw
        The raw relation record.

    Returns
    -------
    relation
    """
    tags = _tags_dict(raw.tags)
    return Relation(
        id=raw.id,
        members=tuple(raw.members),
        tags=tags,
        rel_type=tags.get("type", ""),
        center=raw.center,
        meta=Metadata(**raw.meta),
    )
