"""
osmtopo setup script.
"""

import os
from itertools import chain

from setuptools import setup

# version of the package
VERSION = "0.1.0"

# minimum required python version
PYTHON_REQUIRES = ">=3.9"

# optional dependency versions
extras = {
    "tests": ["pytest>=7", "typeguard>=4"],
}
extras["all"] = sorted(set(chain(*extras.values())))
EXTRAS_REQUIRE = dict(sorted(extras.items()))

# list of classifiers from the PyPI classifiers trove
CLASSIFIERS = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "License :: OSI Approved :: MIT License",
    "Operating System :: OS Independent",
    "Programming Language :: Python",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.9",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Topic :: Scientific/Engineering :: GIS",
    "Topic :: Scientific/Engineering :: Information Analysis",
]

# provide a short description of package
DESCRIPTION = "Parse OpenStreetMap XML and resolve relations into multipolygons and multilinestrings"

# provide a long description using reStructuredText
LONG_DESCRIPTION = r"""
osmtopo is a Python package that parses OpenStreetMap XML documents into
keyed collections of nodes, ways, and relations, then resolves relations into
geometry: multipolygon relations into closed rings (with inner holes) and
other relations into per-role multilinestrings. Results convert to
GeoDataFrames or to long-form attribute tables pre-sized by a streaming
first pass over the document.
"""

# only specify install_requires if not in RTD environment
if os.getenv("READTHEDOCS") == "True":
    INSTALL_REQUIRES = []
else:
    with open("requirements.txt") as f:
        INSTALL_REQUIRES = [line.strip() for line in f.readlines() if line.strip()]

# now call setup
setup(
    classifiers=CLASSIFIERS,
    description=DESCRIPTION,
    extras_require=EXTRAS_REQUIRE,
    install_requires=INSTALL_REQUIRES,
    license="MIT",
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/x-rst",
    name="osmtopo",
    packages=["osmtopo"],
    platforms="any",
    python_requires=PYTHON_REQUIRES,
    version=VERSION,
)
