# ruff: noqa: PLC0414
"""
Expose the most common functionality in the package's namespace.

This allows the common functions to be accessed directly via the
osmtopo.function_name() shortcut.
"""

from ._osm_xml import count_elements as count_elements
from ._osm_xml import read_xml as read_xml
from ._validate import validate_store as validate_store
from .convert import multilinestrings_to_gdf as multilinestrings_to_gdf
from .convert import multipolygons_to_gdf as multipolygons_to_gdf
from .convert import nodes_to_gdf as nodes_to_gdf
from .convert import to_tables as to_tables
from .convert import ways_to_gdf as ways_to_gdf
from .store import EntityStore as EntityStore
from .store import from_xml as from_xml
from .topology import resolve_relations as resolve_relations
from .topology import trace_multilinestring as trace_multilinestring
from .topology import trace_multipolygon as trace_multipolygon
from .trace import trace_way as trace_way
from .utils import log as log
from .utils import ts as ts
from .utils import unique_id as unique_id
