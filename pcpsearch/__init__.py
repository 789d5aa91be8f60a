"""pcpsearch causal structure learning with false discovery rate control."""

# License: GNU General Public License v3.0

from .graphs import Node, Graph
from .data_processing import DataFrame
from .pcp import PCP

__version__ = "0.1.0"
