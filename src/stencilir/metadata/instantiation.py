"""
StencilInstantiation

The persisted unit of the toolchain: one StencilMetaInfo, one IIR root and
the ID allocator handing out AccessIDs and IIR node IDs. Positive IDs come
from one counter shared by AccessIDs and nodes; literal AccessIDs come from
a separate negative counter (-1, -2, ...).
"""

import logging
from typing import Optional, Sequence

from ..ir.nodes import IIR, DoMethod, MultiStage, Stage, Stencil
from ..shared.errors import InvariantViolationError
from ..shared.interval import Interval
from ..shared.types import LoopOrder, StencilAttr
from ..utils.config import DEFAULT_FIELD_DIMENSIONS, VERSION_NAME_SEPARATOR
from .meta_info import GlobalValue, StencilMetaInfo

logger = logging.getLogger("stencilir.metadata.instantiation")


class StencilInstantiation:
    def __init__(self, metadata: Optional[StencilMetaInfo] = None, iir: Optional[IIR] = None):
        self.metadata = metadata if metadata is not None else StencilMetaInfo()
        self.iir = iir if iir is not None else IIR()
        self._next_id = 1
        self._next_literal_id = -1
        self.reseed()

    # ------------------------------------------------------------------
    # ID allocation
    # ------------------------------------------------------------------

    def next_uid(self) -> int:
        uid = self._next_id
        self._next_id += 1
        return uid

    def next_literal_id(self) -> int:
        uid = self._next_literal_id
        self._next_literal_id -= 1
        return uid

    def reseed(self) -> None:
        """Move both counters past every ID already present (after decoding or manual edits)"""
        used = set(self.metadata.all_access_ids())
        for stencil_id in self.metadata.id_to_stencil_call:
            used.add(stencil_id)
        for node in self.iir.walk():
            node_id = getattr(node, 'id', None)
            if node_id is not None:
                used.add(node_id)
        positive = [i for i in used if i > 0]
        negative = [i for i in used if i < 0]
        self._next_id = max(self._next_id, max(positive, default=0) + 1)
        self._next_literal_id = min(self._next_literal_id, min(negative, default=0) - 1)

    # ------------------------------------------------------------------
    # IIR node factories (nodes are returned detached)
    # ------------------------------------------------------------------

    def create_stencil(self, attributes: StencilAttr = StencilAttr.NONE) -> Stencil:
        return Stencil(self.next_uid(), attributes)

    def create_multi_stage(self, loop_order: LoopOrder) -> MultiStage:
        return MultiStage(self.next_uid(), loop_order)

    def create_stage(self) -> Stage:
        return Stage(self.next_uid())

    def create_do_method(self, interval: Interval) -> DoMethod:
        return DoMethod(self.next_uid(), interval)

    # ------------------------------------------------------------------
    # Symbol registration
    # ------------------------------------------------------------------

    def register_field(self, name: str, is_temporary: bool = False,
                       legal_dimensions: Sequence[int] = DEFAULT_FIELD_DIMENSIONS) -> int:
        access_id = self.next_uid()
        self.metadata.add_field(access_id, name, is_temporary, legal_dimensions)
        logger.debug(f"registered {'temporary' if is_temporary else 'API'} field '{name}' as {access_id}")
        return access_id

    def register_variable(self, name: str) -> int:
        access_id = self.next_uid()
        self.metadata.add_variable(access_id, name)
        return access_id

    def register_global_variable(self, name: str, value: GlobalValue) -> int:
        access_id = self.next_uid()
        self.metadata.add_global_variable(access_id, name, value)
        return access_id

    def register_literal(self, text: str) -> int:
        access_id = self.next_literal_id()
        self.metadata.add_literal(access_id, text)
        return access_id

    def create_version(self, access_id: int) -> int:
        """
        Give the field or variable `access_id` a fresh AccessID named
        `<name>_<n>`, classified like the original, and register it as a
        version of the original.
        """
        meta = self.metadata
        if meta.is_literal(access_id) or meta.is_global_variable(access_id):
            raise InvariantViolationError(f"AccessID {access_id} is not a field or local variable")
        versions = meta.variable_versions
        original = versions.original_of(access_id) if versions.is_versioned(access_id) else access_id
        base = meta.get_name_from_access_id(original)

        count = len(versions.versions_of(original)) + 1 if versions.is_versioned(original) else 1
        name = f"{base}{VERSION_NAME_SEPARATOR}{count}"
        while meta.has_name(name):
            count += 1
            name = f"{base}{VERSION_NAME_SEPARATOR}{count}"

        version_id = self.next_uid()
        if meta.is_field(original):
            meta.add_field(version_id, name, meta.is_temporary_field(original),
                           meta.field_id_to_legal_dimensions.get(original, DEFAULT_FIELD_DIMENSIONS))
        else:
            meta.add_variable(version_id, name)
        versions.add_version(original, version_id)
        logger.debug(f"created version {version_id} ('{name}') of AccessID {original}")
        return version_id

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Raise InvariantViolationError listing every invariant this instantiation breaks"""
        from ..passes.validation import validate_instantiation
        validate_instantiation(self)

    def __eq__(self, other):
        if not isinstance(other, StencilInstantiation):
            return NotImplemented
        return self.metadata == other.metadata and self.iir == other.iir

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"StencilInstantiation({self.metadata.stencil_name!r}, stencils={len(self.iir)})"
