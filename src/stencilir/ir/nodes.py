"""
Internal IR Nodes

The lowered computational tree of one StencilInstantiation:

    IIR -> Stencil -> MultiStage -> Stage -> DoMethod -> StatementAccessPair

Every level is an ordered sequence of the level below plus identifying data.
Construction is purely additive (append / insert / replace); IDs are handed
out by the owning StencilInstantiation and only need to be unique per kind
within one Stencil.
"""

from typing import Iterator, List, Optional, TypeVar, Generic
from abc import ABC, abstractmethod

from ..shared.errors import LookupFailureError
from ..shared.interval import Interval
from ..shared.nodes import Statement
from ..shared.types import LoopOrder, StencilAttr
from .accesses import Accesses

T = TypeVar('T')


class IRNode:
    """
    Base class for all IIR nodes.

    Regular class with __slots__; nodes are mutable (optimizer passes edit
    them in place), so they compare structurally but are not hashable.
    """
    __slots__ = ()

    def accept(self, visitor: 'IIRVisitor[T]') -> 'T':
        raise NotImplementedError(f"accept() not implemented for {self.__class__.__name__}")

    def children(self) -> List['IRNode']:
        return []

    def walk(self) -> Iterator['IRNode']:
        """Pre-order traversal of this subtree"""
        yield self
        for child in self.children():
            yield from child.walk()

    def _get_all_attributes(self):
        attrs = {}
        for cls in reversed(self.__class__.__mro__):
            for slot in cls.__dict__.get('__slots__', ()):
                attrs[slot] = getattr(self, slot, None)
        return attrs

    def __eq__(self, other):
        if not isinstance(other, IRNode):
            return NotImplemented
        if type(other) is not type(self):
            return False
        return self._get_all_attributes() == other._get_all_attributes()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        body = ", ".join(f"{k}={v!r}" for k, v in self._get_all_attributes().items())
        return f"{self.__class__.__name__}({body})"


class IRContainer(IRNode):
    """IIR level holding an ordered list of the level below in `_children_attr`"""
    __slots__ = ()
    _children_attr = ""

    def _items(self) -> list:
        return getattr(self, self._children_attr)

    def append(self, child) -> None:
        self._items().append(child)

    def insert(self, index: int, child) -> None:
        self._items().insert(index, child)

    def replace(self, index: int, child) -> None:
        self._items()[index] = child

    def remove(self, index: int):
        return self._items().pop(index)

    def __len__(self) -> int:
        return len(self._items())

    def __iter__(self):
        return iter(self._items())

    def __getitem__(self, index: int):
        return self._items()[index]

    def children(self) -> List[IRNode]:
        return list(self._items())


class StatementAccessPair(IRNode):
    """
    Leaf of the IIR: one statement (possibly a block) with the accesses the
    statement itself performs (caller) and, for statements coming from an
    inlined stencil function, the accesses attributable to the callee.
    """
    __slots__ = ('statement', 'caller_accesses', 'callee_accesses')

    def __init__(self, statement: Statement, caller_accesses: Optional[Accesses] = None,
                 callee_accesses: Optional[Accesses] = None):
        self.statement = statement
        self.caller_accesses = caller_accesses if caller_accesses is not None else Accesses()
        self.callee_accesses = callee_accesses

    def accept(self, visitor: 'IIRVisitor[T]') -> 'T':
        return visitor.visit_statement_access_pair(self)


class DoMethod(IRContainer):
    """Statements executed over one vertical interval"""
    __slots__ = ('id', 'interval', 'statement_access_pairs')
    _children_attr = 'statement_access_pairs'

    def __init__(self, id: int, interval: Interval,
                 statement_access_pairs: Optional[List[StatementAccessPair]] = None):
        self.id = id
        self.interval = interval
        self.statement_access_pairs = list(statement_access_pairs) if statement_access_pairs else []

    def accept(self, visitor: 'IIRVisitor[T]') -> 'T':
        return visitor.visit_do_method(self)


class Stage(IRContainer):
    """
    Usually one horizontal (ij) loop nest. DoMethods are kept in sequence
    order; keeping their intervals apart is the optimizer's business.
    """
    __slots__ = ('id', 'do_methods')
    _children_attr = 'do_methods'

    def __init__(self, id: int, do_methods: Optional[List[DoMethod]] = None):
        self.id = id
        self.do_methods = list(do_methods) if do_methods else []

    def accept(self, visitor: 'IIRVisitor[T]') -> 'T':
        return visitor.visit_stage(self)


class MultiStage(IRContainer):
    """Stages sharing one vertical loop; loop_order is set by lowering and taken as given"""
    __slots__ = ('id', 'loop_order', 'stages')
    _children_attr = 'stages'

    def __init__(self, id: int, loop_order: LoopOrder, stages: Optional[List[Stage]] = None):
        self.id = id
        self.loop_order = LoopOrder(loop_order)
        self.stages = list(stages) if stages else []

    def accept(self, visitor: 'IIRVisitor[T]') -> 'T':
        return visitor.visit_multi_stage(self)


class Stencil(IRContainer):
    """One generated stencil; a user stencil may lower into several of these"""
    __slots__ = ('id', 'attributes', 'multi_stages')
    _children_attr = 'multi_stages'

    def __init__(self, id: int, attributes: StencilAttr = StencilAttr.NONE,
                 multi_stages: Optional[List[MultiStage]] = None):
        self.id = id
        self.attributes = StencilAttr(attributes)
        self.multi_stages = list(multi_stages) if multi_stages else []

    def has_attribute(self, attr: StencilAttr) -> bool:
        return bool(self.attributes & attr)

    def set_attribute(self, attr: StencilAttr) -> None:
        self.attributes |= attr

    def do_methods(self) -> Iterator[DoMethod]:
        for node in self.walk():
            if isinstance(node, DoMethod):
                yield node

    def statement_access_pairs(self) -> Iterator[StatementAccessPair]:
        for node in self.walk():
            if isinstance(node, StatementAccessPair):
                yield node

    def accept(self, visitor: 'IIRVisitor[T]') -> 'T':
        return visitor.visit_stencil(self)


class IIR(IRContainer):
    """Root of the internal IR"""
    __slots__ = ('stencils',)
    _children_attr = 'stencils'

    def __init__(self, stencils: Optional[List[Stencil]] = None):
        self.stencils = list(stencils) if stencils else []

    def get_stencil(self, stencil_id: int) -> Stencil:
        for stencil in self.stencils:
            if stencil.id == stencil_id:
                return stencil
        raise LookupFailureError(f"no stencil with ID {stencil_id}", stencil_id)

    def accept(self, visitor: 'IIRVisitor[T]') -> 'T':
        return visitor.visit_iir(self)


class IIRVisitor(ABC, Generic[T]):
    """Visitor for IIR nodes (no isinstance needed)."""

    @abstractmethod
    def visit_iir(self, node: IIR) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_stencil(self, node: Stencil) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_multi_stage(self, node: MultiStage) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_stage(self, node: Stage) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_do_method(self, node: DoMethod) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_statement_access_pair(self, node: StatementAccessPair) -> T:
        raise NotImplementedError


class IIRTraversal(IIRVisitor[None]):
    """Default traversal: containers recurse into their children, leaves do nothing."""

    def _visit_children(self, node: IRContainer) -> None:
        for child in node:
            child.accept(self)

    def visit_iir(self, node: IIR) -> None:
        self._visit_children(node)

    def visit_stencil(self, node: Stencil) -> None:
        self._visit_children(node)

    def visit_multi_stage(self, node: MultiStage) -> None:
        self._visit_children(node)

    def visit_stage(self, node: Stage) -> None:
        self._visit_children(node)

    def visit_do_method(self, node: DoMethod) -> None:
        self._visit_children(node)

    def visit_statement_access_pair(self, node: StatementAccessPair) -> None:
        pass
