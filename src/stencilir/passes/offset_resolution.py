"""
Field-access offset resolution

Inside a stencil function, `in(dir+1)` cannot be turned into an I/J/K offset
until the function is called with a concrete direction. Such accesses carry a
DeferredOffset; `resolve_field_access` computes the concrete offset for one
set of call arguments and returns a new FieldAccess. Inputs are never
mutated, so the same template can be resolved for every call site.
"""

from typing import Any, List, Sequence

from ..shared.errors import InvariantViolationError, LookupFailureError
from ..shared.nodes import DeferredOffset, FieldAccess, ResolvedOffset, StencilFunctionArgument
from ..shared.types import Dimension
from ..utils.config import UNUSED_ARGUMENT_INDEX


def _binding(bindings: Sequence[Any], index: int, node: FieldAccess) -> StencilFunctionArgument:
    if not 0 <= index < len(bindings):
        raise LookupFailureError(
            f"field access '{node.name}' references argument {index}, "
            f"but only {len(bindings)} arguments are bound", index
        )
    binding = bindings[index]
    if (not isinstance(binding, StencilFunctionArgument)
            or binding.dimension is Dimension.INVALID
            or binding.references_argument):
        raise InvariantViolationError(
            f"argument {index} of field access '{node.name}' is not bound to a concrete direction",
            node.location,
        )
    return binding


def resolve_offset(node: FieldAccess, bindings: Sequence[Any]) -> ResolvedOffset:
    """
    Concrete offset of `node` for the call arguments `bindings` (one entry per
    stencil-function argument; only directional / offset entries are read).

    For every slot `d` with `argument_map[d] = a`, the bound argument adds
    `argument_offset[d] + bindings[a].offset` in its own dimension.
    """
    offset = node.offset
    result: List[int] = list(offset.offset)
    if isinstance(offset, DeferredOffset):
        for slot, index in enumerate(offset.argument_map):
            if index == UNUSED_ARGUMENT_INDEX:
                continue
            binding = _binding(bindings, index, node)
            result[int(binding.dimension)] += offset.argument_offset[slot] + binding.offset
    if node.negate_offset:
        result = [-value for value in result]
    return ResolvedOffset(tuple(result))


def resolve_field_access(node: FieldAccess, bindings: Sequence[Any] = ()) -> FieldAccess:
    """New FieldAccess with a ResolvedOffset (negation already applied)"""
    return FieldAccess(node.name, resolve_offset(node, bindings), negate_offset=False,
                       location=node.location)
