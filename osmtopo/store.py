"""
Build and hold the node, way, and relation collections of an OSM document.

An `EntityStore` is built once from an OSM XML document, then treated as
read-only: the way tracer and relation topology resolver only ever read from
it, so any number of relations may be resolved against the same store.
"""

from __future__ import annotations

import logging as lg
from typing import TYPE_CHECKING
from typing import Callable

from . import _osm_xml
from . import settings
from . import utils
from .elements import RawNode
from .elements import RawRelation
from .elements import RawWay
from .elements import build_node
from .elements import build_relation
from .elements import build_way

if TYPE_CHECKING:
    from .elements import Node
    from .elements import Relation
    from .elements import Way


class EntityStore:
    """
    Keyed collections of OSM nodes, ways, and relations.

    Attributes
    ----------
    nodes
        Nodes keyed by OSM ID. The first node parsed with a given ID wins.
    ways
        Ways keyed by OSM ID. The first way parsed with a given ID is held
        here; later ways with a colliding ID are kept in `duplicate_ways`.
    relations
        Relations in document order. The first relation parsed with a given
        ID wins.
    duplicate_ways
        Ways whose ID collided with an already-stored way, in document order.
    empty_way_ids
        IDs of ways with no node references, which are never stored.
    dropped_values
        Count of tag values dropped for lack of a preceding key.
    """

    def __init__(self) -> None:
        self.nodes: dict[int, Node] = {}
        self.ways: dict[int, Way] = {}
        self.relations: list[Relation] = []
        self.duplicate_ways: list[Way] = []
        self.empty_way_ids: list[int] = []
        self.dropped_values = 0
        self._relations_by_id: dict[int, Relation] = {}
        self._keys: dict[str, set[str]] = {"node": set(), "way": set(), "relation": set()}

    def __repr__(self) -> str:
        return (
            f"<EntityStore: {len(self.nodes):,} nodes, {len(self.ways):,} ways, "
            f"{len(self.relations):,} relations>"
        )

    @classmethod
    def from_xml(
        cls,
        xml_text: str | bytes,
        *,
        extract_reserved_tags: bool | None = None,
        strict: bool | None = None,
        progress_callback: Callable[[int], None] | None = None,
    ) -> EntityStore:
        """
        Build an entity store from an OSM XML document.

        The document is traversed exactly once. Any error raised while parsing
        propagates immediately and no partial store is returned.

        Parameters
        ----------
        xml_text
            The OSM XML document.
        extract_reserved_tags
            Whether to pull `name`, `highway`, and `oneway=yes` out of ways'
            generic tags. If None, use the `settings.extract_reserved_tags`
            value.
        strict
            Whether to raise on tag values without a preceding key. If None,
            use the `settings.strict_tag_pairs` value.
        progress_callback
            If not None, called with the running count of parsed elements
            every `settings.progress_interval` elements. Any exception it
            raises aborts the traversal.

        Returns
        -------
        store
        """
        if extract_reserved_tags is None:
            extract_reserved_tags = settings.extract_reserved_tags

        store = cls()
        root = _osm_xml.parse_xml(xml_text)
        count = 0
        for raw in _osm_xml.iter_raw_elements(root, strict=strict):
            if isinstance(raw, RawNode):
                store._add_node(raw)
            elif isinstance(raw, RawWay):
                store._add_way(raw, extract_reserved_tags=extract_reserved_tags)
            else:
                store._add_relation(raw)
            store.dropped_values += raw.dropped_values

            count += 1
            if progress_callback is not None and count % settings.progress_interval == 0:
                progress_callback(count)

        if store.dropped_values > 0:
            msg = f"Dropped {store.dropped_values:,} tag value(s) without a preceding key"
            utils.log(msg, level=lg.WARNING)

        msg = f"Parsed {count:,} elements into {store!r}"
        utils.log(msg, level=lg.INFO)
        return store

    def _add_node(self, raw: RawNode) -> None:
        if raw.id in self.nodes:
            return
        self.nodes[raw.id] = build_node(raw)
        self._keys["node"].update(k for k, _ in raw.tags)

    def _add_way(self, raw: RawWay, *, extract_reserved_tags: bool) -> None:
        if len(raw.nodes) == 0:
            self.empty_way_ids.append(raw.id)
            msg = f"Way {raw.id} has no nodes and was skipped"
            utils.log(msg, level=lg.WARNING)
            return

        way = build_way(raw, extract_reserved_tags=extract_reserved_tags)
        if way.id in self.ways:
            self.duplicate_ways.append(way)
            msg = f"Way ID {way.id} occurs more than once"
            utils.log(msg, level=lg.WARNING)
        else:
            self.ways[way.id] = way
        self._keys["way"].update(way.tags)

    def _add_relation(self, raw: RawRelation) -> None:
        if raw.id in self._relations_by_id:
            return
        self._insert_relation(build_relation(raw))

    def _insert_relation(self, relation: Relation) -> None:
        self.relations.append(relation)
        self._relations_by_id[relation.id] = relation
        self._keys["relation"].update(relation.tags)

    def has_node(self, osmid: int) -> bool:
        """Whether a node with this ID is stored."""
        return osmid in self.nodes

    def has_way(self, osmid: int) -> bool:
        """Whether a way with this ID is stored."""
        return osmid in self.ways

    def get_relation(self, osmid: int) -> Relation | None:
        """Return the relation with this ID, or None if absent."""
        return self._relations_by_id.get(osmid)

    @property
    def node_keys(self) -> list[str]:
        """Sorted unique tag keys across all nodes."""
        return sorted(self._keys["node"])

    @property
    def way_keys(self) -> list[str]:
        """Sorted unique tag keys across all ways."""
        return sorted(self._keys["way"])

    @property
    def relation_keys(self) -> list[str]:
        """Sorted unique tag keys across all relations."""
        return sorted(self._keys["relation"])

    def key_index(self, kind: str) -> dict[str, int]:
        """
        Map each unique tag key of an entity class to a column number.

        Lets attribute tables built from different entities of the same class
        share one consistent column layout.

        Parameters
        ----------
        kind
            {"node", "way", "relation"}
            The entity class.

        Returns
        -------
        index
        """
        if kind not in self._keys:
            msg = f"Invalid entity class {kind!r}."
            raise ValueError(msg)
        return {key: i for i, key in enumerate(sorted(self._keys[kind]))}

    @property
    def bbox(self) -> tuple[float, float, float, float] | None:
        """The `(left, bottom, right, top)` bounds of all nodes, or None if none."""
        if len(self.nodes) == 0:
            return None
        lons = [node.lon for node in self.nodes.values()]
        lats = [node.lat for node in self.nodes.values()]
        return (min(lons), min(lats), max(lons), max(lats))

    def polygonal_ways(self) -> list[Way]:
        """Return the stored ways that are closed."""
        return [way for way in self.ways.values() if way.is_polygonal]

    def substore(self, relation: Relation) -> EntityStore:
        """
        Return a new store holding only what tracing a relation reads.

        The substore holds the relation plus its member ways and their nodes,
        so a relation can be resolved in another process without shipping the
        whole store there.

        Parameters
        ----------
        relation
            The relation to resolve.

        Returns
        -------
        store
        """
        sub = EntityStore()
        sub._insert_relation(relation)
        for way_id, _ in relation.ways:
            way = self.ways.get(way_id)
            if way is None:
                continue
            sub.ways[way_id] = way
            for node_id in way.nodes:
                node = self.nodes.get(node_id)
                if node is not None:
                    sub.nodes[node_id] = node
        return sub


def from_xml(
    xml_text: str | bytes,
    *,
    extract_reserved_tags: bool | None = None,
    strict: bool | None = None,
    progress_callback: Callable[[int], None] | None = None,
) -> EntityStore:
    """
    Build an entity store of nodes, ways, and relations from OSM XML.

    See `EntityStore.from_xml` for details.

    Parameters
    ----------
    xml_text
        The OSM XML document.
    extract_reserved_tags
        Whether to pull `name`, `highway`, and `oneway=yes` out of ways'
        generic tags. If None, use the `settings.extract_reserved_tags` value.
    strict
        Whether to raise on tag values without a preceding key. If None, use
        the `settings.strict_tag_pairs` value.
    progress_callback
        If not None, called with the running count of parsed elements every
        `settings.progress_interval` elements.

    Returns
    -------
    store
    """
    return EntityStore.from_xml(
        xml_text,
        extract_reserved_tags=extract_reserved_tags,
        strict=strict,
        progress_callback=progress_callback,
    )
