"""
Convert entity stores and resolved relations to GeoDataFrames and tables.

These are the outward-facing collaborators of the parsing and topology core:
they lay resolved entities out as attribute tables with one consistent column
per unique tag key, build shapely geometries from traced coordinates, and
make indexes unique when OSM IDs collide.
"""

from __future__ import annotations

import logging as lg
from typing import TYPE_CHECKING
from typing import Any

import geopandas as gpd
import numpy as np
import pandas as pd
from shapely import LineString
from shapely import MultiLineString
from shapely import MultiPolygon
from shapely import Point
from shapely import Polygon
from shapely import prepare
from shapely.errors import GEOSException
from shapely.ops import unary_union

from . import _osm_xml
from . import settings
from . import utils
from .elements import META_ATTRS
from .elements import RawNode
from .elements import RawWay
from .topology import NO_ROLE

if TYPE_CHECKING:
    from .elements import Metadata
    from .elements import Node
    from .elements import Way
    from .store import EntityStore
    from .topology import Resolution

# metadata columns, prefixed to keep them apart from tag keys
META_COLUMNS = [f"_{attr}" for attr in META_ATTRS]

# columns every GeoDataFrame carries, which tag keys may not shadow
_FIXED_COLUMNS = {"osmid", "geometry", *META_COLUMNS}


def _meta_record(meta: Metadata) -> dict[str, str | None]:
    return {f"_{attr}": (getattr(meta, attr) or None) for attr in META_ATTRS}


def _tag_columns(keys: list[str], exclude: set[str] | None = None) -> list[str]:
    exclude = _FIXED_COLUMNS if exclude is None else _FIXED_COLUMNS | exclude
    return [key for key in keys if key not in exclude]


def _make_gdf(records: list[dict[str, Any]], columns: list[str]) -> gpd.GeoDataFrame:
    """
    Build a GeoDataFrame indexed by `osmid` with a fixed column layout.

    Parameters
    ----------
    records
        One dict per row. Keys absent from a record become nulls.
    columns
        The column layout, including "osmid" and "geometry".

    Returns
    -------
    gdf
    """
    df = pd.DataFrame.from_records(records, columns=columns)
    gdf = gpd.GeoDataFrame(df, geometry="geometry", crs=settings.default_crs)
    return gdf.set_index("osmid")


def nodes_to_gdf(store: EntityStore, *, tagged_only: bool = False) -> gpd.GeoDataFrame:
    """
    Convert a store's nodes to a GeoDataFrame of points.

    Parameters
    ----------
    store
        The entity store.
    tagged_only
        If True, only include nodes that have at least one tag, i.e., point
        features rather than bare way vertices.

    Returns
    -------
    gdf_nodes
    """
    tag_columns = _tag_columns(store.node_keys)
    records = []
    for node in store.nodes.values():
        if tagged_only and len(node.tags) == 0:
            continue
        record: dict[str, Any] = {k: v for k, v in node.tags.items() if k in tag_columns}
        record.update(_meta_record(node.meta))
        record["osmid"] = node.id
        record["geometry"] = Point(node.lon, node.lat)
        records.append(record)

    columns = ["osmid", *tag_columns, *META_COLUMNS, "geometry"]
    return _make_gdf(records, columns)


def _build_way_geometry(
    way: Way,
    nodes: dict[int, Node],
    *,
    polygon: bool,
) -> LineString | Polygon:
    """
    Build a way's geometry from its constituent nodes' coordinates.

    Parameters
    ----------
    way
        The way.
    nodes
        Nodes keyed by OSM ID.
    polygon
        If True, build a Polygon, otherwise a LineString.

    Returns
    -------
    geometry
    """
    geom_type = Polygon if polygon else LineString
    try:
        return geom_type([(nodes[n].lon, nodes[n].lat) for n in way.nodes])
    except (GEOSException, KeyError, ValueError) as e:
        msg = f"Could not build geometry of way {way.id}: {e!r}"
        utils.log(msg, level=lg.WARNING)
        return geom_type()


def ways_to_gdf(store: EntityStore, *, polygons: bool = False) -> gpd.GeoDataFrame:
    """
    Convert a store's ways to a GeoDataFrame of lines or polygons.

    Open ways become LineStrings and closed ways become Polygons, so call
    this once with each value of `polygons` to get both. Ways sharing an OSM
    ID are all included, indexed by `"{id}"`, `"{id}.0"`, `"{id}.1"`, and so
    on, so the index is always unique.

    Parameters
    ----------
    store
        The entity store.
    polygons
        If True, convert the closed ways, otherwise the open ones.

    Returns
    -------
    gdf_ways
    """
    reserved = ["name", "highway", "oneway"]
    tag_columns = _tag_columns(store.way_keys, exclude=set(reserved))

    ids: set[str] = set()
    records = []
    for way in [*store.ways.values(), *store.duplicate_ways]:
        if way.is_polygonal != polygons:
            continue
        record: dict[str, Any] = {k: v for k, v in way.tags.items() if k in tag_columns}

        # reserved tags come from the way's attributes whether or not they
        # were extracted, so oneway is always a boolean column
        record["name"] = way.name or None
        record["highway"] = way.highway or None
        record["oneway"] = way.oneway
        record.update(_meta_record(way.meta))
        record["osmid"] = utils.unique_id(way.id, ids)
        record["geometry"] = _build_way_geometry(way, store.nodes, polygon=polygons)
        records.append(record)

    columns = ["osmid", *reserved, *tag_columns, *META_COLUMNS, "geometry"]
    return _make_gdf(records, columns)


def _remove_polygon_holes(
    outer_polygons: list[Polygon],
    inner_polygons: list[Polygon],
) -> Polygon | MultiPolygon:
    """
    Subtract inner holes from outer polygons.

    This allows possible island polygons within a larger polygon's holes.

    Parameters
    ----------
    outer_polygons
        Polygons, including possible islands within a larger polygon's holes.
    inner_polygons
        Inner holes to subtract from the outer polygons that contain them.

    Returns
    -------
    geometry
    """
    if len(inner_polygons) == 0:
        geometry = unary_union(outer_polygons)
    else:
        polygons_with_holes = []
        for outer in outer_polygons:
            prepare(outer)
            holes = [inner for inner in inner_polygons if outer.contains(inner)]
            polygons_with_holes.append(outer.difference(unary_union(holes)))
        geometry = unary_union(polygons_with_holes)

    if isinstance(geometry, (Polygon, MultiPolygon)):
        return geometry
    return Polygon()


def multipolygons_to_gdf(store: EntityStore, resolution: Resolution) -> gpd.GeoDataFrame:
    """
    Convert resolved multipolygon relations to a GeoDataFrame.

    Each relation's closed rings become polygons: rings with the "inner" role
    are cut as holes out of the other rings that contain them. Relations
    without any closed ring are omitted.

    Parameters
    ----------
    store
        The entity store the relations were resolved from.
    resolution
        The resolved relations.

    Returns
    -------
    gdf_multipolygons
    """
    tag_columns = _tag_columns(store.relation_keys, exclude={"ways"})
    records = []
    for relation_id, rings in resolution.multipolygons.items():
        relation = store.get_relation(relation_id)
        if relation is None or len(rings) == 0:
            continue

        outer_polygons = []
        inner_polygons = []
        for ring in rings:
            try:
                polygon = Polygon(ring.coords)
            except (GEOSException, ValueError) as e:
                msg = f"Could not build ring {ring.way_id_string} of relation {relation_id}: {e!r}"
                utils.log(msg, level=lg.WARNING)
                continue
            if ring.role == "inner":
                inner_polygons.append(polygon)
            else:
                outer_polygons.append(polygon)

        record: dict[str, Any] = {k: v for k, v in relation.tags.items() if k in tag_columns}
        record.update(_meta_record(relation.meta))
        record["osmid"] = relation_id
        record["ways"] = ",".join(ring.way_id_string for ring in rings)
        try:
            record["geometry"] = _remove_polygon_holes(outer_polygons, inner_polygons)
        except GEOSException as e:
            # e.g., a self-intersecting ring
            msg = f"Could not build geometry of relation {relation_id}: {e!r}"
            utils.log(msg, level=lg.WARNING)
            record["geometry"] = Polygon()
        records.append(record)

    columns = ["osmid", "ways", *tag_columns, *META_COLUMNS, "geometry"]
    return _make_gdf(records, columns)


def multilinestrings_to_gdf(store: EntityStore, resolution: Resolution) -> gpd.GeoDataFrame:
    """
    Convert resolved multilinestring relations to a GeoDataFrame.

    Each relation contributes one row per member role, indexed by the
    composite ID `"{relation_id}-{role}"`. Role groups without any traceable
    chain are omitted.

    Parameters
    ----------
    store
        The entity store the relations were resolved from.
    resolution
        The resolved relations.

    Returns
    -------
    gdf_multilinestrings
    """
    tag_columns = _tag_columns(store.relation_keys, exclude={"role"})
    records = []
    for relation_id, groups in resolution.multilinestrings.items():
        relation = store.get_relation(relation_id)
        if relation is None:
            continue
        for group in groups:
            lines = [chain.coords for chain in group.chains if len(chain.coords) > 1]
            if len(lines) == 0:
                continue
            record: dict[str, Any] = {k: v for k, v in relation.tags.items() if k in tag_columns}
            record.update(_meta_record(relation.meta))
            record["osmid"] = group.id
            record["role"] = group.role or NO_ROLE
            record["geometry"] = MultiLineString(lines)
            records.append(record)

    columns = ["osmid", "role", *tag_columns, *META_COLUMNS, "geometry"]
    return _make_gdf(records, columns)


def _fill_kv(
    arrays: tuple[np.ndarray, np.ndarray, np.ndarray],
    start: int,
    osmid: int,
    pairs: list[tuple[str, str]],
) -> int:
    ids, keys, values = arrays
    for i, (key, value) in enumerate(pairs, start=start):
        ids[i] = osmid
        keys[i] = key
        values[i] = value
    return start + len(pairs)


def _kv_arrays(n: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    return np.empty(n, dtype=np.int64), np.empty(n, dtype=object), np.empty(n, dtype=object)


def _kv_frame(arrays: tuple[np.ndarray, np.ndarray, np.ndarray], n: int) -> pd.DataFrame:
    ids, keys, values = arrays
    return pd.DataFrame({"id": ids[:n], "key": keys[:n], "value": values[:n]})


def to_tables(xml_text: str | bytes) -> dict[str, pd.DataFrame]:
    """
    Convert an OSM XML document to long-form tables of its raw elements.

    The document is scanned twice: a read-only first pass counts every
    element so each column can be allocated once at its exact final size,
    then a second pass fills the columns. Elements are tabulated as they
    appear, without deduplication. Ways are decomposed into edges between
    consecutive nodes, numbered sequentially.

    Parameters
    ----------
    xml_text
        The OSM XML document.

    Returns
    -------
    tables
        Keyed by table name: "vertex" (vertex_, x_, y_), "edge" (.vx0, .vx1,
        edge_), "object_link_edge" (edge_, object_), "relation_members"
        (relation_, member, type, role), and "nodes_kv", "ways_kv",
        "relations_kv" (id, key, value).
    """
    counters = _osm_xml.count_elements(xml_text)
    msg = f"Pre-scanned {counters!r}"
    utils.log(msg, level=lg.DEBUG)

    vertex_id = np.empty(counters.nodes, dtype=np.int64)
    vertex_x = np.empty(counters.nodes, dtype=float)
    vertex_y = np.empty(counters.nodes, dtype=float)
    vx0 = np.empty(counters.edges, dtype=np.int64)
    vx1 = np.empty(counters.edges, dtype=np.int64)
    edge_object = np.empty(counters.edges, dtype=np.int64)
    member_rel = np.empty(counters.relation_members, dtype=np.int64)
    member_ref = np.empty(counters.relation_members, dtype=np.int64)
    member_type = np.empty(counters.relation_members, dtype=object)
    member_role = np.empty(counters.relation_members, dtype=object)
    node_kv = _kv_arrays(counters.node_tags)
    way_kv = _kv_arrays(counters.way_tags)
    rel_kv = _kv_arrays(counters.relation_tags)

    n_node = n_edge = n_member = n_node_kv = n_way_kv = n_rel_kv = 0
    for raw in _osm_xml.iter_raw_elements(_osm_xml.parse_xml(xml_text)):
        if isinstance(raw, RawNode):
            vertex_id[n_node] = raw.id
            vertex_x[n_node] = raw.lon
            vertex_y[n_node] = raw.lat
            n_node += 1
            n_node_kv = _fill_kv(node_kv, n_node_kv, raw.id, raw.tags)
        elif isinstance(raw, RawWay):
            for u, v in zip(raw.nodes[:-1], raw.nodes[1:]):
                vx0[n_edge] = u
                vx1[n_edge] = v
                edge_object[n_edge] = raw.id
                n_edge += 1
            n_way_kv = _fill_kv(way_kv, n_way_kv, raw.id, raw.tags)
        else:
            for member in raw.members:
                member_rel[n_member] = raw.id
                member_ref[n_member] = member.ref
                member_type[n_member] = member.type
                member_role[n_member] = member.role
                n_member += 1
            n_rel_kv = _fill_kv(rel_kv, n_rel_kv, raw.id, raw.tags)

    edge_ids = np.arange(n_edge, dtype=np.int64)
    return {
        "vertex": pd.DataFrame(
            {"vertex_": vertex_id[:n_node], "x_": vertex_x[:n_node], "y_": vertex_y[:n_node]},
        ),
        "edge": pd.DataFrame({".vx0": vx0[:n_edge], ".vx1": vx1[:n_edge], "edge_": edge_ids}),
        "object_link_edge": pd.DataFrame({"edge_": edge_ids, "object_": edge_object[:n_edge]}),
        "relation_members": pd.DataFrame(
            {
                "relation_": member_rel[:n_member],
                "member": member_ref[:n_member],
                "type": member_type[:n_member],
                "role": member_role[:n_member],
            },
        ),
        "nodes_kv": _kv_frame(node_kv, n_node_kv),
        "ways_kv": _kv_frame(way_kv, n_way_kv),
        "relations_kv": _kv_frame(rel_kv, n_rel_kv),
    }
