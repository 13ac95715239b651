"""Partition the required tables into per-domain schema components."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Set, Tuple
from schemair.ir.rules import format_schema_filename, is_valid_identifier, normalize_domain
from schemair.ir.schema import Component
from schemair.config.logging import get_logger

logger = get_logger(__name__)

PlanningIssueKind = Literal[
    "UnassignedTable",
    "DuplicateAssignment",
    "UnexpectedTable",
    "DuplicateFilename",
    "InvalidTableName",
]


@dataclass
class PlanningIssue:
    """One reason a component plan is unusable."""

    kind: PlanningIssueKind
    table: Optional[str]
    message: str
    components: List[str] = field(default_factory=list)


class PlanningError(Exception):
    """Raised when tables cannot be partitioned; carries every issue found."""

    def __init__(self, issues: List[PlanningIssue]):
        self.issues = issues
        summary = "; ".join(i.message for i in issues[:5])
        if len(issues) > 5:
            summary += f"; ... and {len(issues) - 5} more"
        super().__init__(f"Component planning failed with {len(issues)} issue(s): {summary}")

    @property
    def kinds(self) -> List[str]:
        return [i.kind for i in self.issues]


def _assignment_issues(
    assignments: Sequence[Tuple[str, Sequence[str]]],
    required: Sequence[str],
) -> List[PlanningIssue]:
    """
    Disjointness and coverage of ``(owner, tables)`` pairs against the required set.

    Owners may repeat; each pair still counts as a separate claim on its tables.
    """
    issues: List[PlanningIssue] = []
    owners: Dict[str, List[str]] = {}
    for owner, tables in assignments:
        for table in dict.fromkeys(tables):
            owners.setdefault(table, []).append(owner)

    required_set = set(required)
    for table in required:
        if not is_valid_identifier(table):
            issues.append(
                PlanningIssue(
                    kind="InvalidTableName",
                    table=table,
                    message=f"Table name '{table}' must match ^[a-z][a-z0-9_]*$",
                )
            )

    for table, holders in owners.items():
        if len(holders) > 1:
            issues.append(
                PlanningIssue(
                    kind="DuplicateAssignment",
                    table=table,
                    message=f"Table '{table}' is assigned to {', '.join(holders)}",
                    components=holders,
                )
            )
        if table not in required_set:
            issues.append(
                PlanningIssue(
                    kind="UnexpectedTable",
                    table=table,
                    message=f"Table '{table}' is not in the required table set",
                    components=holders,
                )
            )

    for table in dict.fromkeys(required):
        if table not in owners:
            issues.append(
                PlanningIssue(
                    kind="UnassignedTable",
                    table=table,
                    message=f"Table '{table}' is not assigned to any component",
                )
            )
    return issues


def _dependency_order(
    domains: List[str],
    tables_by_domain: Mapping[str, Sequence[str]],
    references: Mapping[str, Sequence[str]],
) -> List[str]:
    """
    Order domains so referenced domains come before their referencers.

    Kahn's algorithm with hint order as the tie-break. On a cycle the earliest
    remaining domain is emitted next, which keeps the result total.
    """
    owner = {t: d for d in domains for t in tables_by_domain[d]}
    depends_on: Dict[str, Set[str]] = {d: set() for d in domains}
    for domain in domains:
        for table in tables_by_domain[domain]:
            for target in references.get(table, ()):
                target_domain = owner.get(target)
                if target_domain is not None and target_domain != domain:
                    depends_on[domain].add(target_domain)

    ordered: List[str] = []
    remaining = list(domains)
    while remaining:
        ready = [d for d in remaining if depends_on[d] <= set(ordered)]
        if ready:
            nxt = ready[0]
        else:
            nxt = remaining[0]
            logger.debug(f"Dependency cycle among {remaining}; emitting '{nxt}' first")
        ordered.append(nxt)
        remaining.remove(nxt)
    return ordered


def _default_namespace(domain: str) -> str:
    """Namespace label for a domain, e.g. order_items -> OrderItems."""
    return "".join(part.title() for part in normalize_domain(domain).split("_"))


def plan_components(
    required_tables: Iterable[str],
    domain_hints: Mapping[str, Sequence[str]],
    references: Optional[Mapping[str, Sequence[str]]] = None,
    namespaces: Optional[Mapping[str, str]] = None,
    start: int = 1,
) -> List[Component]:
    """
    Partition the required tables into ordered components.

    Args:
        required_tables: Every table the application must contain
        domain_hints: Domain -> tables, in preferred order (an external classification)
        references: Optional table -> referenced tables, used only for ordering
        namespaces: Optional domain -> namespace label (defaults to the title-cased domain)
        start: Number of the first schema file

    Returns:
        Components in dependency order, named ``schema-{NN}-{domain}.prisma``

    Raises:
        PlanningError: With every unassigned, duplicated, unexpected or invalid table
    """
    required = list(dict.fromkeys(required_tables))
    references = references or {}
    namespaces = namespaces or {}

    tables_by_domain: Dict[str, List[str]] = {}
    for domain, tables in domain_hints.items():
        unique_tables = list(dict.fromkeys(tables))
        if not unique_tables:
            logger.warning(f"Domain '{domain}' has no tables; skipping")
            continue
        tables_by_domain[domain] = unique_tables

    issues = _assignment_issues(list(tables_by_domain.items()), required)

    slugs: Dict[str, List[str]] = {}
    for domain in tables_by_domain:
        try:
            slugs.setdefault(normalize_domain(domain), []).append(domain)
        except ValueError as e:
            issues.append(PlanningIssue(kind="DuplicateFilename", table=None, message=str(e)))
    for slug, domains in slugs.items():
        if len(domains) > 1:
            issues.append(
                PlanningIssue(
                    kind="DuplicateFilename",
                    table=None,
                    message=f"Domains {domains} all map to filename slug '{slug}'",
                    components=domains,
                )
            )

    if issues:
        logger.error(f"Component planning failed with {len(issues)} issues")
        raise PlanningError(issues)

    order = _dependency_order(list(tables_by_domain), tables_by_domain, references)
    components = [
        Component(
            filename=format_schema_filename(start + i, domain),
            namespace=namespaces.get(domain) or _default_namespace(domain),
            tables=tables_by_domain[domain],
        )
        for i, domain in enumerate(order)
    ]
    logger.info(
        f"Planned {len(components)} components covering {len(required)} tables"
    )
    return components


def check_components(
    components: Sequence[Component],
    required_tables: Optional[Iterable[str]] = None,
) -> None:
    """
    Validate an externally supplied component plan.

    Args:
        components: Plan to check
        required_tables: Required table set; defaults to the union of the plan's tables

    Raises:
        PlanningError: With every issue found
    """
    seen: Set[str] = set()
    issues: List[PlanningIssue] = []
    for component in components:
        if component.filename in seen:
            issues.append(
                PlanningIssue(
                    kind="DuplicateFilename",
                    table=None,
                    message=f"Filename '{component.filename}' is used by more than one component",
                    components=[component.filename],
                )
            )
        seen.add(component.filename)

    assignments = [(c.filename, c.tables) for c in components]
    if required_tables is None:
        required = list(dict.fromkeys(t for c in components for t in c.tables))
    else:
        required = list(required_tables)
    issues.extend(_assignment_issues(assignments, required))

    if issues:
        logger.error(f"Component plan check failed with {len(issues)} issues")
        raise PlanningError(issues)
