"""
IIR Validation Pass

Checks that a StencilInstantiation is well-formed before it is handed to the
next tool:

1. Every Interval (DoMethods, vertical regions of the stencil description)
   has lower bound <= upper bound
2. IIR node IDs are unique per kind within one Stencil, stencil IDs within
   the IIR
3. Symbol-table partition: API fields and temporaries partition the field
   set, global variables are disjoint from it, literal IDs are disjoint from
   named IDs, names are injective
4. Field versions are consistent
5. Every AccessID referenced by an Accesses table is known to the metadata

Nothing is fixed up: every violation is collected into the ErrorReporter
and raised together as one InvariantViolationError. Reaching this error
means a producer (front-end, optimizer pass, decoder input) is broken.
"""

import logging
from typing import Dict, Optional, Set, TYPE_CHECKING

from ..ir.accesses import Accesses
from ..ir.nodes import IIR, DoMethod, IIRVisitor, MultiStage, Stage, StatementAccessPair, Stencil
from ..shared.errors import ErrorReporter, InvariantViolationError, INVARIANT_VIOLATION
from ..shared.interval import Interval
from ..shared.nodes import VerticalRegionDeclaration
from ..shared.source_location import SourceLocation

if TYPE_CHECKING:
    from ..metadata.instantiation import StencilInstantiation
    from ..metadata.meta_info import StencilMetaInfo

logger = logging.getLogger("stencilir.passes.validation")


class IIRValidationVisitor(IIRVisitor[None]):
    """
    Walks the IIR once, reporting bad intervals, duplicate IDs and accesses
    to unknown AccessIDs.
    """

    def __init__(self, metadata: 'StencilMetaInfo', reporter: ErrorReporter):
        self.metadata = metadata
        self.reporter = reporter
        self.nodes_validated = 0
        self._stencil_ids: Set[int] = set()
        self._seen: Dict[str, Set[int]] = {}
        self._stencil_id: Optional[int] = None

    def _report_error(self, message: str, location: Optional[SourceLocation] = None,
                      note: Optional[str] = None):
        self.reporter.report_error(message, location, code=INVARIANT_VIOLATION, note=note)

    def _check_unique(self, kind: str, node_id: int) -> None:
        seen = self._seen.setdefault(kind, set())
        if node_id in seen:
            self._report_error(f"duplicate {kind} ID {node_id}", note=f"in stencil {self._stencil_id}")
        seen.add(node_id)

    def _check_accesses(self, accesses: Accesses, side: str, location: SourceLocation) -> None:
        for access_id in accesses.access_ids():
            if not self.metadata.has_access_id(access_id):
                self._report_error(f"{side} accesses reference unknown AccessID {access_id}", location)

    def visit_iir(self, node: IIR) -> None:
        self.nodes_validated += 1
        for stencil in node:
            stencil.accept(self)

    def visit_stencil(self, node: Stencil) -> None:
        self.nodes_validated += 1
        if node.id in self._stencil_ids:
            self._report_error(f"duplicate stencil ID {node.id}")
        self._stencil_ids.add(node.id)
        self._stencil_id = node.id
        self._seen = {}
        for multi_stage in node:
            multi_stage.accept(self)

    def visit_multi_stage(self, node: MultiStage) -> None:
        self.nodes_validated += 1
        self._check_unique("multi-stage", node.id)
        for stage in node:
            stage.accept(self)

    def visit_stage(self, node: Stage) -> None:
        self.nodes_validated += 1
        self._check_unique("stage", node.id)
        for do_method in node:
            do_method.accept(self)

    def visit_do_method(self, node: DoMethod) -> None:
        self.nodes_validated += 1
        self._check_unique("do-method", node.id)
        check_interval(node.interval, self.reporter, note=f"DoMethod {node.id}")
        for pair in node:
            pair.accept(self)

    def visit_statement_access_pair(self, node: StatementAccessPair) -> None:
        self.nodes_validated += 1
        location = node.statement.location
        self._check_accesses(node.caller_accesses, "caller", location)
        if node.callee_accesses is not None:
            self._check_accesses(node.callee_accesses, "callee", location)


def check_interval(interval: Interval, reporter: ErrorReporter,
                   location: Optional[SourceLocation] = None, note: Optional[str] = None) -> None:
    if not interval.is_valid():
        reporter.report_error(
            f"interval {interval} has its lower bound above its upper bound",
            location, code=INVARIANT_VIOLATION, note=note,
        )


def check_metadata(metadata: 'StencilMetaInfo', reporter: ErrorReporter) -> None:
    """Symbol-table invariants (partition, injectivity, versions, stencil description intervals)"""
    def report(message: str, note: Optional[str] = None):
        reporter.report_error(message, metadata.stencil_location, code=INVARIANT_VIOLATION, note=note)

    fields = set(metadata.field_access_ids)
    api = set(metadata.api_field_ids)
    temporaries = set(metadata.temporary_field_ids)
    globals_ = set(metadata.global_variable_ids)

    for access_id in sorted(api & temporaries):
        report(f"field {access_id} is both an API field and a temporary")
    for access_id in sorted(fields - (api | temporaries)):
        report(f"field {access_id} is neither an API field nor a temporary")
    for access_id in sorted((api | temporaries) - fields):
        report(f"AccessID {access_id} is classified as API/temporary field but is not a field")
    for access_id in sorted(globals_ & fields):
        report(f"AccessID {access_id} is both a field and a global variable")
    if len(api) != len(metadata.api_field_ids):
        report("the API field list contains duplicates")

    owners: Dict[str, int] = {}
    for access_id, name in metadata.access_id_to_name.items():
        if name in owners:
            report(f"name '{name}' is bound to AccessIDs {owners[name]} and {access_id}")
        else:
            owners[name] = access_id
    for access_id in sorted(set(metadata.literal_id_to_name) & set(metadata.access_id_to_name)):
        report(f"literal AccessID {access_id} is also a named AccessID")
    for access_id in sorted((fields | globals_) - set(metadata.access_id_to_name)):
        report(f"AccessID {access_id} has no name")
    for access_id in sorted(set(metadata.field_id_to_legal_dimensions) - fields):
        report(f"legal dimensions recorded for AccessID {access_id}, which is not a field")

    for message in metadata.variable_versions.violations():
        report(message, note="field versions")

    for index, desc in enumerate(metadata.stencil_desc_statements):
        for node in desc.stmt.walk():
            if isinstance(node, VerticalRegionDeclaration):
                check_interval(node.vertical_region.interval, reporter, node.location,
                               note=f"stencil description statement {index}")


class IIRValidationPass:
    """Read-only pass: returns the instantiation unchanged or raises InvariantViolationError."""

    def run(self, instantiation: 'StencilInstantiation') -> 'StencilInstantiation':
        logger.debug(f"Starting IIR validation of '{instantiation.metadata.stencil_name}'")
        reporter = ErrorReporter()
        check_metadata(instantiation.metadata, reporter)
        visitor = IIRValidationVisitor(instantiation.metadata, reporter)
        instantiation.iir.accept(visitor)

        if reporter.has_errors():
            logger.debug(f"IIR validation failed: {len(reporter.errors)} violations, "
                         f"{visitor.nodes_validated} nodes validated")
            raise InvariantViolationError.from_reporter(reporter)
        logger.debug(f"IIR validation passed: {visitor.nodes_validated} nodes validated")
        return instantiation


def validate_instantiation(instantiation: 'StencilInstantiation') -> None:
    IIRValidationPass().run(instantiation)
