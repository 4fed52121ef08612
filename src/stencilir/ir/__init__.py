"""
Internal IR: lowered computational tree and access footprints.
"""

from .accesses import Extent, Extents, Accesses, merge, is_subset_of, overlaps
from .nodes import (
    IRNode, IRContainer, StatementAccessPair, DoMethod, Stage, MultiStage, Stencil, IIR,
    IIRVisitor, IIRTraversal,
)
