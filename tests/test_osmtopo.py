# ruff: noqa: PLR2004
"""Test suite for the package."""

from __future__ import annotations

import bz2
import logging as lg
from pathlib import Path

import geopandas as gpd
import pandas as pd
import pytest
from shapely import MultiLineString
from shapely import Polygon
from typeguard import TypeCheckError
from typeguard import check_type

import osmtopo as ot
from osmtopo.elements import Node
from osmtopo.elements import Way
from osmtopo.topology import Resolution
from osmtopo.trace import Trace

ot.settings.log_console = True
ot.settings.log_file = True
ot.settings.logs_folder = ".temp/logs"


def _osm(*elements: str) -> str:
    return '<osm version="0.6">' + "".join(elements) + "</osm>"


def _node(osmid: int, lon: float, lat: float, tags: str = "") -> str:
    return f'<node id="{osmid}" lat="{lat}" lon="{lon}">{tags}</node>'


def _way(osmid: int, refs: list[int], tags: str = "") -> str:
    nds = "".join(f'<nd ref="{ref}"/>' for ref in refs)
    return f'<way id="{osmid}">{nds}{tags}</way>'


def _relation(osmid: int, members: list[tuple[int, str]], tags: str = "") -> str:
    mems = "".join(f'<member type="way" ref="{ref}" role="{role}"/>' for ref, role in members)
    return f'<relation id="{osmid}">{mems}{tags}</relation>'


# a unit square: one closed way around four nodes
UNIT_SQUARE = _osm(
    _node(1, 0, 0),
    _node(2, 1, 0),
    _node(3, 1, 1),
    _node(4, 0, 1),
    _way(10, [1, 2, 3, 4, 1], '<tag k="building" v="yes"/>'),
)

# a 10x10 square split into two outer ways, with a 2x2 inner hole
SQUARE_NODES = (
    _node(1, 0, 0),
    _node(2, 10, 0),
    _node(3, 10, 10),
    _node(4, 0, 10),
    _node(5, 2, 2),
    _node(6, 4, 2),
    _node(7, 4, 4),
    _node(8, 2, 4),
)
MULTIPOLYGON = _osm(
    *SQUARE_NODES,
    _way(100, [1, 2, 3]),
    _way(101, [3, 4, 1]),
    _way(102, [5, 6, 7, 8, 5]),
    _relation(
        1000,
        [(101, "outer"), (102, "inner"), (100, "outer")],
        '<tag k="type" v="multipolygon"/><tag k="name" v="Pond"/>',
    ),
)

# a route whose member ways are grouped by role
ROUTE = _osm(
    *(_node(i, i, 0) for i in range(1, 7)),
    _way(300, [1, 2]),
    _way(301, [3, 4]),
    _way(302, [6, 5]),
    '<relation id="2000">'
    '<member type="node" ref="1" role="stop"/>'
    '<member type="way" ref="300" role=""/>'
    '<member type="way" ref="301" role="side"/>'
    '<member type="way" ref="302" role="side"/>'
    '<tag k="type" v="route"/>'
    "</relation>",
)


def test_logging() -> None:
    """Test the logger."""
    ot.log("test a fake default message")
    ot.log("test a fake debug", level=lg.DEBUG)
    ot.log("test a fake info", level=lg.INFO)
    ot.log("test a fake warning", level=lg.WARNING)
    ot.log("test a fake error", level=lg.ERROR)

    ot.ts(style="iso8601")
    ot.ts(style="date")
    ot.ts(style="time")
    ot.ts(template="{:%Y}")


def test_exceptions() -> None:
    """Test the custom errors."""
    message = "testing exception"

    with pytest.raises(ot._errors.DanglingReferenceError):
        raise ot._errors.DanglingReferenceError(message)

    with pytest.raises(ot._errors.ParseError):
        raise ot._errors.ParseError(message)

    with pytest.raises(ot._errors.StructuralInvariantError):
        raise ot._errors.StructuralInvariantError(message)

    with pytest.raises(ot._errors.TopologyError):
        raise ot._errors.TopologyError(message)

    with pytest.raises(ot._errors.ValidationError):
        raise ot._errors.ValidationError(message)

    # dangling references are lookup failures, the rest are bad values
    assert issubclass(ot._errors.DanglingReferenceError, LookupError)
    assert issubclass(ot._errors.ParseError, ValueError)


def test_unit_square() -> None:
    """Test parsing a single closed way."""
    store = ot.from_xml(UNIT_SQUARE)
    assert len(store.nodes) == 4
    assert len(store.ways) == 1
    assert len(store.relations) == 0
    assert store.ways[10].nodes == (1, 2, 3, 4, 1)
    assert store.ways[10].is_polygonal
    assert store.polygonal_ways() == [store.ways[10]]
    assert store.bbox == (0, 0, 1, 1)
    assert store.way_keys == ["building"]
    assert "4 nodes, 1 ways, 0 relations" in repr(store)

    # the classmethod and the module-level function agree
    other = ot.EntityStore.from_xml(UNIT_SQUARE.encode("utf-8"))
    assert other.nodes == store.nodes
    assert other.ways == store.ways


def test_wrappers_and_metadata() -> None:
    """Test entities nested in wrapper elements and their attributes."""
    xml = _osm(
        "<bounds minlat='0' minlon='0' maxlat='1' maxlon='1'/>",
        "<modify>",
        '<node id="-1" lat="51.5" lon="-0.1" version="3" user="alice" uid="7"/>',
        "</modify>",
        "<create><delete>",
        _way(-5, [-1, -1]),
        "</delete></create>",
        '<relation id="9"><center lat="51.6" lon="-0.2"/><tag k="type" v="site"/></relation>',
    )
    store = ot.from_xml(xml)
    node = store.nodes[-1]
    assert (node.lat, node.lon) == (51.5, -0.1)
    assert node.meta.version == "3"
    assert node.meta.user == "alice"
    assert node.meta.timestamp == ""
    assert store.has_way(-5)
    assert store.get_relation(9).center == (51.6, -0.2)
    assert store.get_relation(9).rel_type == "site"
    assert store.get_relation(10) is None


def test_parse_errors() -> None:
    """Test malformed documents and attributes."""
    with pytest.raises(ot._errors.ParseError):
        ot.from_xml("<osm><node id='1'></osm>")

    with pytest.raises(ot._errors.ParseError):
        ot.from_xml(_osm('<node id="1" lat="abc" lon="0"/>'))

    with pytest.raises(ot._errors.ParseError):
        ot.from_xml(_osm('<way id="x"><nd ref="1"/></way>'))

    with pytest.raises(ot._errors.ParseError):
        ot.count_elements("<osm><way></osm>")

    # numbers must be plain decimal text
    bad_attrs = ['id="1_0"', 'id=" 5"', 'id="1" lat="nan"', 'id="1" lon="inf"', 'id="1" lat="1_0"']
    for attrs in bad_attrs:
        with pytest.raises(ot._errors.ParseError):
            ot.from_xml(_osm(f"<node {attrs}/>"))

    store = ot.from_xml(_osm('<node id="+7" lat="-.5" lon="1e-3"/>'))
    assert (store.nodes[7].lat, store.nodes[7].lon) == (-0.5, 0.001)

    # absent numeric attributes default to zero
    store = ot.from_xml(_osm('<node id="4"/>'))
    assert (store.nodes[4].lat, store.nodes[4].lon) == (0, 0)


def test_tag_pairs() -> None:
    """Test pairing tag keys with their values."""
    # a key without a value always fails
    with pytest.raises(ot._errors.StructuralInvariantError):
        ot.from_xml(_osm(_node(1, 0, 0, '<tag k="amenity"/>')))

    with pytest.raises(ot._errors.StructuralInvariantError, match="way 10"):
        ot.from_xml(_osm(_node(1, 0, 0), _way(10, [1, 1], '<tag k="highway"/>')))

    with pytest.raises(ot._errors.StructuralInvariantError, match="relation 20"):
        ot.from_xml(_osm(_relation(20, [(10, "")], '<tag k="type"/>')))

    # a value without a key is dropped by default
    xml = _osm(_node(1, 0, 0, '<tag v="orphan"/><tag k="amenity" v="cafe"/>'))
    store = ot.from_xml(xml)
    assert store.nodes[1].tags == {"amenity": "cafe"}
    assert store.dropped_values == 1

    # and fails when strict
    with pytest.raises(ot._errors.StructuralInvariantError):
        ot.from_xml(xml, strict=True)

    default_strict = ot.settings.strict_tag_pairs
    ot.settings.strict_tag_pairs = True
    with pytest.raises(ot._errors.StructuralInvariantError):
        ot.from_xml(xml)
    ot.settings.strict_tag_pairs = default_strict

    # the first of repeated keys wins
    store = ot.from_xml(_osm(_node(1, 0, 0, '<tag k="a" v="1"/><tag k="a" v="2"/>')))
    assert store.nodes[1].tags == {"a": "1"}


def test_reserved_way_tags() -> None:
    """Test extracting name, highway, and oneway from way tags."""
    tags = (
        '<tag k="name" v="Main St"/><tag k="highway" v="primary"/>'
        '<tag k="oneway" v="yes"/><tag k="oneway:bicycle" v="no"/>'
    )
    xml = _osm(_node(1, 0, 0), _node(2, 1, 0), _way(10, [1, 2], tags))

    way = ot.from_xml(xml).ways[10]
    assert way.name == "Main St"
    assert way.highway == "primary"
    assert way.oneway
    assert way.tags == {"oneway:bicycle": "no"}

    way = ot.from_xml(xml, extract_reserved_tags=False).ways[10]
    assert way.name == "Main St"
    assert way.oneway
    assert way.tags == {
        "name": "Main St",
        "highway": "primary",
        "oneway": "yes",
        "oneway:bicycle": "no",
    }

    # only the exact value "yes" makes a way oneway, other values stay tags
    xml = _osm(_node(1, 0, 0), _node(2, 1, 0), _way(10, [1, 2], '<tag k="oneway" v="-1"/>'))
    way = ot.from_xml(xml).ways[10]
    assert not way.oneway
    assert way.tags == {"oneway": "-1"}
    assert way.name == ""


def test_duplicates() -> None:
    """Test elements sharing an ID."""
    xml = _osm(
        _node(1, 0, 0),
        _node(1, 5, 5),
        _node(2, 1, 0),
        _node(3, 2, 0),
        _way(10, [1, 2]),
        _way(10, [2, 3]),
        _way(11, []),
        _relation(20, [(10, "")], '<tag k="name" v="first"/>'),
        _relation(20, [(10, "")], '<tag k="name" v="second"/>'),
    )
    store = ot.from_xml(xml)
    assert (store.nodes[1].lon, store.nodes[1].lat) == (0, 0)
    assert store.ways[10].nodes == (1, 2)
    assert [way.nodes for way in store.duplicate_ways] == [(2, 3)]
    assert store.empty_way_ids == [11]
    assert not store.has_way(11)
    assert len(store.relations) == 1
    assert store.get_relation(20).tags == {"name": "first"}

    # every way gets a unique index entry
    gdf = ot.ways_to_gdf(store)
    assert list(gdf.index) == ["10", "10.0"]

    existing: set[str] = set()
    assert ot.unique_id(5, existing) == "5"
    assert ot.unique_id(5, existing) == "5.0"
    assert ot.unique_id(5, existing) == "5.1"
    assert ot.unique_id("6", existing) == "6"
    assert existing == {"5", "5.0", "5.1", "6"}


def test_members() -> None:
    """Test relation members of every type."""
    store = ot.from_xml(ROUTE)
    relation = store.get_relation(2000)
    assert len(relation.members) == 4
    assert relation.members[0].type == "node"
    assert relation.ways == [(300, ""), (301, "side"), (302, "side")]
    assert not relation.is_multipolygon
    assert store.relation_keys == ["type"]
    assert store.key_index("relation") == {"type": 0}

    with pytest.raises(ValueError, match="Invalid entity class"):
        store.key_index("area")

    with pytest.raises(ot._errors.StructuralInvariantError):
        ot.from_xml(_osm('<relation id="1"><member type="area" ref="1" role=""/></relation>'))

    # a role of exactly "outer" marks an outer member
    store = ot.from_xml(MULTIPOLYGON)
    relation = store.get_relation(1000)
    assert relation.is_multipolygon
    assert [m.is_outer for m in relation.members] == [True, False, True]


def test_progress_callback() -> None:
    """Test progress reporting during parsing and resolution."""
    counts: list[int] = []
    default_interval = ot.settings.progress_interval
    ot.settings.progress_interval = 2

    ot.from_xml(UNIT_SQUARE, progress_callback=counts.append)
    assert counts == [2, 4]

    def abort(count: int) -> None:
        msg = f"aborted at {count}"
        raise RuntimeError(msg)

    with pytest.raises(RuntimeError, match="aborted at 2"):
        ot.from_xml(UNIT_SQUARE, progress_callback=abort)

    counts.clear()
    relations = [_relation(i, [(100, "")]) for i in range(1, 6)]
    store = ot.from_xml(_osm(*SQUARE_NODES, _way(100, [1, 2, 3]), *relations))
    ot.resolve_relations(store, progress_callback=counts.append)
    assert counts == [2, 4]

    # progress is reported at the same interval when resolving in parallel
    counts.clear()
    ot.resolve_relations(store, progress_callback=counts.append, cpus=2)
    assert counts == [2, 4]

    with pytest.raises(RuntimeError, match="aborted at 2"):
        ot.resolve_relations(store, progress_callback=abort, cpus=2)

    ot.settings.progress_interval = default_interval


def test_count_elements() -> None:
    """Test the pre-scan element counts."""
    counters = ot.count_elements(MULTIPOLYGON)
    assert counters.nodes == 8
    assert counters.node_tags == 0
    assert counters.ways == 3
    assert counters.way_tags == 0
    assert counters.way_nodes == 11
    assert counters.edges == 8
    assert counters.relations == 1
    assert counters.relation_tags == 2
    assert counters.relation_members == 3

    counters = ot.count_elements(_osm("<modify>", _node(1, 0, 0, '<tag k="a" v="b"/>'), "</modify>"))
    assert counters.nodes == 1
    assert counters.node_tags == 1


def test_trace_way() -> None:
    """Test tracing single ways forward and in reverse."""
    store = ot.from_xml(MULTIPOLYGON)
    way = store.ways[100]

    trace = Trace()
    assert ot.trace_way(way, store.nodes, trace) == 3
    assert trace.node_ids == [1, 2, 3]
    assert trace.coords == [(0, 0), (10, 0), (10, 10)]
    assert trace.way_ids == [100]

    # reversed to start at the requested node, skipping the shared coordinate
    assert ot.trace_way(way, store.nodes, trace, 3, append=True) == 1
    assert trace.node_ids == [1, 2, 3, 2, 1]
    assert trace.way_ids == [100, 100]
    assert len(trace) == 5

    # a way that does not touch the requested node emits nothing
    assert ot.trace_way(way, store.nodes, trace, 4) is None
    assert len(trace) == 5

    with pytest.raises(ValueError, match="no nodes"):
        ot.trace_way(Way(id=1, nodes=()), store.nodes, Trace())

    # negative IDs are legal requested nodes
    nodes = {-1: Node(id=-1, lat=0, lon=0), -2: Node(id=-2, lat=1, lon=1)}
    trace = Trace()
    assert ot.trace_way(Way(id=-9, nodes=(-2, -1)), nodes, trace, -1) == -2
    assert trace.node_ids == [-1, -2]


def test_dangling_reference() -> None:
    """Test ways referencing nodes absent from the store."""
    xml = _osm(_node(1, 0, 0), _way(10, [1, 99]), _relation(20, [(10, "outer")]))
    store = ot.from_xml(xml)

    # parsing tolerates the dangling reference, tracing does not
    assert store.ways[10].nodes == (1, 99)
    trace = Trace()
    with pytest.raises(ot._errors.DanglingReferenceError):
        ot.trace_way(store.ways[10], store.nodes, trace)
    assert len(trace) == 0

    with pytest.raises(ot._errors.DanglingReferenceError):
        ot.resolve_relations(store)

    with pytest.raises(ot._errors.ValidationError):
        ot.validate_store(store)


def test_multipolygon() -> None:
    """Test assembling rings from multipolygon relation members."""
    store = ot.from_xml(MULTIPOLYGON)
    rings = ot.trace_multipolygon(store.get_relation(1000), store)
    assert len(rings) == 2
    outer, inner = rings
    assert outer.ok
    assert outer.role == "outer"
    assert outer.node_ids == [3, 4, 1, 2, 3]
    assert outer.way_ids == [101, 100]
    assert outer.way_id_string == "101-100"
    assert outer.coords[0] == outer.coords[-1]
    assert inner.ok
    assert inner.role == "inner"
    assert inner.node_ids == [5, 6, 7, 8, 5]

    resolution = ot.resolve_relations(store)
    assert list(resolution.multipolygons) == [1000]
    assert resolution.ring_count == 2
    assert resolution.failed_rings == []
    assert resolution.missing_ways == []
    assert resolution.multilinestrings == {}


@pytest.mark.parametrize(
    "members",
    [
        [(100, "outer"), (101, "outer")],
        [(101, "outer"), (100, "outer")],
    ],
)
@pytest.mark.parametrize("second_way", [[3, 4, 1], [1, 4, 3]])
def test_ring_closure(members: list[tuple[int, str]], second_way: list[int]) -> None:
    """Test that rings close whatever the member order and way direction."""
    xml = _osm(*SQUARE_NODES, _way(100, [1, 2, 3]), _way(101, second_way), _relation(1, members))
    store = ot.from_xml(xml)
    rings = ot.trace_multipolygon(store.get_relation(1), store)
    assert len(rings) == 1
    assert rings[0].ok
    assert len(rings[0].node_ids) == 5
    assert rings[0].node_ids[0] == rings[0].node_ids[-1]
    assert sorted(rings[0].way_ids) == [100, 101]


def test_unclosed_rings() -> None:
    """Test rings whose member ways never meet."""
    members = [(200, "outer"), (201, "outer")]
    xml = _osm(*SQUARE_NODES, _way(200, [1, 2]), _way(201, [3, 4]), _relation(1, members))
    store = ot.from_xml(xml)
    rings = ot.trace_multipolygon(store.get_relation(1), store)
    assert [ring.ok for ring in rings] == [False, False]

    resolution = ot.resolve_relations(store)
    assert resolution.multipolygons == {1: []}
    assert resolution.ring_count == 0
    assert len(resolution.failed_rings) == 2

    # rings only join members of their own role
    members = [(100, "outer"), (101, "inner")]
    xml = _osm(*SQUARE_NODES, _way(100, [1, 2, 3]), _way(101, [3, 4, 1]), _relation(1, members))
    store = ot.from_xml(xml)
    rings = ot.trace_multipolygon(store.get_relation(1), store)
    assert [(ring.role, ring.ok) for ring in rings] == [("outer", False), ("inner", False)]


def test_missing_member_ways() -> None:
    """Test relations referencing ways absent from the store."""
    xml = _osm(
        *SQUARE_NODES,
        _way(100, [1, 2, 3]),
        _way(101, [3, 4, 1]),
        _relation(1, [(100, "outer"), (999, "outer"), (101, "outer")]),
        _relation(2, [(998, "side"), (100, "side")]),
    )
    store = ot.from_xml(xml)
    resolution = ot.resolve_relations(store)
    assert resolution.ring_count == 1
    assert resolution.missing_ways == [(1, 999), (2, 998)]
    assert [len(group.chains) for group in resolution.multilinestrings[2]] == [1]

    with pytest.raises(ot._errors.ValidationError):
        ot.validate_store(store)

    with pytest.warns(UserWarning, match="missing from the store"):
        ot.validate_store(store, strict=False)


def test_multilinestring() -> None:
    """Test grouping relation members into per-role chains."""
    store = ot.from_xml(ROUTE)
    groups = ot.trace_multilinestring(store.get_relation(2000), store)
    assert [group.id for group in groups] == ["2000-(no role)", "2000-side"]
    assert [len(group.chains) for group in groups] == [1, 2]
    assert groups[1].chains[1].node_ids == [6, 5]
    assert groups[1].chains[1].way_id_string == "302"

    resolution = ot.resolve_relations(store)
    assert resolution.multipolygons == {}
    assert resolution.chain_count == 3

    # the classifier decides how each relation is traced
    resolution = ot.resolve_relations(store, classify=lambda relation: False)
    assert resolution.chain_count == 3
    store = ot.from_xml(MULTIPOLYGON)
    resolution = ot.resolve_relations(store, classify=lambda relation: False)
    assert [group.role for group in resolution.multilinestrings[1000]] == ["inner", "outer"]
    assert resolution.ring_count == 0

    # a role whose member ways are all missing yields no group
    relation = _relation(9, [(100, "a"), (999, "b")])
    store = ot.from_xml(_osm(*SQUARE_NODES, _way(100, [1, 2]), relation))
    missing: list[tuple[int, int]] = []
    groups = ot.trace_multilinestring(store.get_relation(9), store, missing)
    assert [(group.id, len(group.chains)) for group in groups] == [("9-a", 1)]
    assert missing == [(9, 999)]


def test_resolve_parallel() -> None:
    """Test resolving relations across multiple processes."""
    xml = _osm(
        *SQUARE_NODES,
        _way(100, [1, 2, 3]),
        _way(101, [3, 4, 1]),
        _way(102, [5, 6, 7, 8, 5]),
        _relation(1000, [(101, "outer"), (102, "inner"), (100, "outer")]),
        _relation(2000, [(100, ""), (102, "side")]),
    )
    store = ot.from_xml(xml)
    serial = ot.resolve_relations(store)
    parallel = ot.resolve_relations(store, cpus=2)
    assert parallel.ring_count == serial.ring_count == 2
    assert parallel.chain_count == serial.chain_count == 2
    assert parallel.multipolygons[1000][0].node_ids == serial.multipolygons[1000][0].node_ids

    # substores hold only what a relation's tracing reads
    sub = store.substore(store.get_relation(2000))
    assert sorted(sub.ways) == [100, 102]
    assert sorted(sub.nodes) == [1, 2, 3, 5, 6, 7, 8]
    assert [rel.id for rel in sub.relations] == [2000]


def test_validate_store() -> None:
    """Test validating entity stores."""
    ot.validate_store(ot.from_xml(MULTIPOLYGON))

    store = ot.from_xml(_osm(_node(1, 0, 0), _node(2, 1, 0), _way(10, [1, 2]), _way(10, [2, 1])))
    with pytest.raises(ot._errors.ValidationError, match="duplicate IDs"):
        ot.validate_store(store)

    with pytest.warns(UserWarning):
        ot.validate_store(store, strict=False)


def test_read_xml(tmp_path: Path) -> None:
    """Test reading plain and compressed files."""
    filepath = tmp_path / "square.osm"
    filepath.write_text(UNIT_SQUARE, encoding="utf-8")
    assert ot.read_xml(filepath) == UNIT_SQUARE

    filepath_bz2 = tmp_path / "square.osm.bz2"
    filepath_bz2.write_bytes(bz2.compress(UNIT_SQUARE.encode("utf-8")))
    assert ot.read_xml(str(filepath_bz2)) == UNIT_SQUARE
    assert len(ot.from_xml(ot.read_xml(filepath_bz2)).nodes) == 4


def test_nodes_and_ways_to_gdf() -> None:
    """Test converting nodes and ways to GeoDataFrames."""
    xml = UNIT_SQUARE.replace(
        '<node id="1" lat="0" lon="0">',
        '<node id="1" lat="0" lon="0" version="2"><tag k="amenity" v="bench"/>',
    )
    store = ot.from_xml(xml)

    gdf_nodes = ot.nodes_to_gdf(store)
    assert isinstance(gdf_nodes, gpd.GeoDataFrame)
    assert len(gdf_nodes) == 4
    assert gdf_nodes.crs == ot.settings.default_crs
    assert gdf_nodes.loc[1, "amenity"] == "bench"
    assert gdf_nodes.loc[1, "_version"] == "2"
    assert pd.isna(gdf_nodes.loc[2, "amenity"])
    assert gdf_nodes.loc[3, "geometry"].coords[0] == (1, 1)
    assert len(ot.nodes_to_gdf(store, tagged_only=True)) == 1

    gdf_polygons = ot.ways_to_gdf(store, polygons=True)
    assert list(gdf_polygons.index) == ["10"]
    assert gdf_polygons.loc["10", "building"] == "yes"
    assert isinstance(gdf_polygons.loc["10", "geometry"], Polygon)
    assert gdf_polygons.loc["10", "geometry"].area == pytest.approx(1)
    assert len(ot.ways_to_gdf(store, polygons=False)) == 0

    # a way with a dangling reference gets an empty geometry
    store = ot.from_xml(_osm(_node(1, 0, 0), _way(10, [1, 99], '<tag k="name" v="x"/>')))
    gdf_lines = ot.ways_to_gdf(store)
    assert gdf_lines.loc["10", "name"] == "x"
    assert gdf_lines.loc["10", "geometry"].is_empty

    # oneway is a boolean column whatever the raw tag values
    for extract in (True, False):
        store = ot.from_xml(
            _osm(
                *SQUARE_NODES,
                _way(10, [1, 2], '<tag k="oneway" v="yes"/>'),
                _way(11, [2, 3], '<tag k="oneway" v="-1"/>'),
                _way(12, [3, 4]),
            ),
            extract_reserved_tags=extract,
        )
        gdf_lines = ot.ways_to_gdf(store)
        assert gdf_lines["oneway"].tolist() == [True, False, False]
        assert gdf_lines["oneway"].dtype == bool


def test_relations_to_gdf() -> None:
    """Test converting resolved relations to GeoDataFrames."""
    store = ot.from_xml(MULTIPOLYGON)
    resolution = ot.resolve_relations(store)
    gdf = ot.multipolygons_to_gdf(store, resolution)
    assert list(gdf.index) == [1000]
    assert gdf.loc[1000, "name"] == "Pond"
    assert gdf.loc[1000, "ways"] == "101-100,102"
    assert gdf.loc[1000, "geometry"].area == pytest.approx(96)

    store = ot.from_xml(ROUTE)
    resolution = ot.resolve_relations(store)
    gdf = ot.multilinestrings_to_gdf(store, resolution)
    assert list(gdf.index) == ["2000-(no role)", "2000-side"]
    assert list(gdf["role"]) == ["(no role)", "side"]
    assert gdf.loc["2000-side", "type"] == "route"
    assert isinstance(gdf.loc["2000-side", "geometry"], MultiLineString)
    assert len(gdf.loc["2000-side", "geometry"].geoms) == 2

    # a self-intersecting ring gets an empty geometry without failing the rest
    xml = _osm(
        _node(1, 0, 0),
        _node(2, 1, 1),
        _node(3, 1, 0),
        _node(4, 0, 1),
        _node(5, 5, 5),
        _node(6, 6, 5),
        _node(7, 5, 6),
        _way(100, [1, 2, 3, 4, 1]),
        _way(101, [5, 6, 7, 5]),
        _relation(1, [(100, "outer"), (101, "outer")]),
        _relation(2, [(101, "outer")]),
    )
    store = ot.from_xml(xml)
    resolution = ot.resolve_relations(store)
    assert resolution.ring_count == 3
    gdf = ot.multipolygons_to_gdf(store, resolution)
    assert list(gdf.index) == [1, 2]
    assert gdf.loc[1, "geometry"].is_empty
    assert gdf.loc[2, "geometry"].area == pytest.approx(0.5)


def test_to_tables() -> None:
    """Test converting documents to long-form tables."""
    tables = ot.to_tables(UNIT_SQUARE)
    assert list(tables["vertex"]["vertex_"]) == [1, 2, 3, 4]
    assert list(tables["vertex"]["x_"]) == [0, 1, 1, 0]
    assert list(tables["edge"][".vx0"]) == [1, 2, 3, 4]
    assert list(tables["edge"][".vx1"]) == [2, 3, 4, 1]
    assert list(tables["edge"]["edge_"]) == [0, 1, 2, 3]
    assert list(tables["object_link_edge"]["object_"]) == [10, 10, 10, 10]
    assert tables["ways_kv"].to_dict("records") == [{"id": 10, "key": "building", "value": "yes"}]
    assert len(tables["nodes_kv"]) == 0
    assert len(tables["relation_members"]) == 0

    tables = ot.to_tables(ROUTE)
    members = tables["relation_members"]
    assert list(members["member"]) == [1, 300, 301, 302]
    assert list(members["type"]) == ["node", "way", "way", "way"]
    assert list(members["role"]) == ["stop", "", "side", "side"]
    assert list(tables["relations_kv"]["value"]) == ["route"]
    assert len(tables["edge"]) == 3


def test_types() -> None:
    """Test the types of parsed and resolved objects."""
    store = ot.from_xml(MULTIPOLYGON)
    check_type(store.nodes, dict[int, Node])
    check_type(store.ways, dict[int, Way])
    check_type(ot.resolve_relations(store), Resolution)

    with pytest.raises(TypeCheckError):
        check_type(store.ways, dict[int, Node])
