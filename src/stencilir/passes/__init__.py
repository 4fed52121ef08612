"""
Passes over the IR: lowering, access computation, offset resolution and
validation.
"""

from .offset_resolution import resolve_field_access, resolve_offset
from .access_computation import AccessComputationVisitor, compute_accesses
from .validation import IIRValidationPass, IIRValidationVisitor, validate_instantiation
from .lowering import StencilLowering, lower_stencil
