"""
Tests for resolving stencil-function field-access offsets.
"""

import pytest

from stencilir.passes.offset_resolution import resolve_field_access, resolve_offset
from stencilir.shared.errors import InvariantViolationError, LookupFailureError
from stencilir.shared.nodes import (
    DeferredOffset, Field, FieldAccess, ResolvedOffset, StencilFunctionArgument,
)
from stencilir.shared.source_location import SourceLocation
from stencilir.shared.types import Dimension


def _deferred(argument_map, argument_offset=(0, 0, 0), negate=False):
    return FieldAccess("in", DeferredOffset(argument_map=argument_map, argument_offset=argument_offset),
                       negate_offset=negate, location=SourceLocation(4, 9))


def test_resolved_offset_passes_through():
    assert resolve_offset(FieldAccess("in", (1, 0, -1)), ()) == ResolvedOffset((1, 0, -1))


def test_negated_resolved_offset():
    assert resolve_offset(FieldAccess("in", (1, 0, -1), negate_offset=True), ()).offset == (-1, 0, 1)


def test_direction_plus_offset():
    # in(dir+2) with dir bound to j
    node = _deferred((1, -1, -1), (2, 0, 0))
    bindings = [Field("in"), StencilFunctionArgument(Dimension.J)]
    assert resolve_offset(node, bindings).offset == (0, 2, 0)


def test_bound_offset_argument_adds_its_offset():
    # in(off) with off bound to i-1
    node = _deferred((1, -1, -1))
    bindings = [Field("in"), StencilFunctionArgument(Dimension.I, -1)]
    assert resolve_offset(node, bindings).offset == (-1, 0, 0)


def test_two_arguments_in_the_same_dimension_accumulate():
    node = _deferred((1, 2, -1), (1, 1, 0))
    bindings = [Field("in"), StencilFunctionArgument(Dimension.K, 1), StencilFunctionArgument(Dimension.K)]
    assert resolve_offset(node, bindings).offset == (0, 0, 3)


def test_negation_applies_after_resolution():
    node = _deferred((-1, -1, 1), negate=True)
    bindings = [Field("in"), StencilFunctionArgument(Dimension.I, 2)]
    assert resolve_offset(node, bindings).offset == (-2, 0, 0)


def test_resolve_field_access_returns_new_node():
    node = _deferred((1, -1, -1), (1, 0, 0), negate=True)
    resolved = resolve_field_access(node, [Field("in"), StencilFunctionArgument(Dimension.I)])
    assert resolved is not node
    assert resolved.offset == ResolvedOffset((-1, 0, 0))
    assert not resolved.negate_offset
    assert resolved.location == SourceLocation(4, 9)
    assert isinstance(node.offset, DeferredOffset)
    assert node.negate_offset


def test_missing_binding():
    with pytest.raises(LookupFailureError):
        resolve_offset(_deferred((3, -1, -1)), [Field("in")])


@pytest.mark.parametrize("binding", [
    Field("in"),
    StencilFunctionArgument(),
    StencilFunctionArgument(Dimension.INVALID, 1, argument_index=0),
])
def test_binding_without_a_concrete_direction(binding):
    with pytest.raises(InvariantViolationError):
        resolve_offset(_deferred((0, -1, -1)), [binding])
