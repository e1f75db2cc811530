"""
Global settings that can be configured by the user.

default_crs : str
    Coordinate reference system to set on GeoDataFrames built by the
    `convert` module. OSM XML coordinates are always unprojected lat-lon
    degrees. Default is `"epsg:4326"`.
extract_reserved_tags : bool
    If True, pull the way tags `name`, `highway` and `oneway=yes` out of the
    way's generic tags mapping and expose them only as the `Way.name`,
    `Way.highway` and `Way.oneway` attributes. If False, these attributes are
    still populated but the tags mapping keeps every key. Default is `True`.
log_console : bool
    If True, print log output to the console (terminal window). Default is
    `False`.
log_file : bool
    If True, save log output to a file in `logs_folder`. Default is `False`.
log_filename : str
    Name of the log file, without file extension. Default is `"osmtopo"`.
log_level : int
    One of Python's `logger.level` constants. Default is `logging.INFO`.
log_name : str
    Name of the logger. Default is `"osmtopo"`.
logs_folder : str | Path
    Path to folder in which to save log files. Default is `"./logs"`.
progress_interval : int
    How many parsed entities (during XML traversal) or resolved relations
    (during topology resolution) pass between calls to a user-supplied
    `progress_callback`. Default is `1000`.
strict_tag_pairs : bool
    If True, a `v` attribute encountered without a preceding `k` attribute
    raises a `StructuralInvariantError`. If False, such values are dropped and
    counted, with a warning logged, tolerating malformed data. Default is `False`.
"""

from __future__ import annotations

import logging as lg
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

default_crs: str = "epsg:4326"
extract_reserved_tags: bool = True
log_console: bool = False
log_file: bool = False
log_filename: str = "osmtopo"
log_level: int = lg.INFO
log_name: str = "osmtopo"
logs_folder: str | Path = "./logs"
progress_interval: int = 1000
strict_tag_pairs: bool = False
