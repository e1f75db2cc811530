# ruff: noqa: D205  # numpydoc ignore=SS06
"""
osmtopo is a Python package to parse OpenStreetMap XML into nodes, ways, and
relations and resolve relations into multipolygon rings and multilinestrings.
"""

from importlib.metadata import version as metadata_version

# expose the package version
__version__ = metadata_version("osmtopo")

# expose the package's public modules
from . import _errors as _errors
from . import convert as convert
from . import elements as elements
from . import settings as settings
from . import store as store
from . import topology as topology
from . import trace as trace
from . import utils as utils

# expose the most common functionality directly
from ._api import *  # noqa: F403
