"""Structural validation of schema IR against its component plan."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Optional, Set, Tuple
from .rules import (
    is_known_scalar_type,
    is_text_type,
    is_valid_filename,
    is_valid_identifier,
    is_valid_relation_name,
)
from .schema import (
    Application,
    CandidateModels,
    Component,
    File,
    Model,
    ValidatedApplication,
    collect_back_references,
    duplicates,
)
from schemair.config.logging import get_logger

logger = get_logger(__name__)

ViolationKind = Literal[
    "DuplicateModel",
    "MissingFile",
    "UnexpectedFile",
    "DuplicateFile",
    "NamespaceMismatch",
    "MissingModel",
    "UnexpectedModel",
    "InvalidFilename",
    "InvalidIdentifier",
    "InvalidRelationName",
    "UnknownScalarType",
    "DanglingReference",
    "AmbiguousRelation",
    "DuplicateField",
    "RelationNameConflict",
    "UnknownIndexField",
    "NonTextFullTextField",
    "EmptyFile",
    "EmptyIndex",
    "DuplicateIndexField",
    "ConfirmationMismatch",
]

Path = Tuple[str, ...]


@dataclass
class Violation:
    """One broken invariant, located by its entity path."""

    kind: ViolationKind
    path: Path  # e.g. ("component:schema-01-actors.prisma", "file:...", "model:users", "field:name")
    message: str
    details: dict = field(default_factory=dict)

    @property
    def location(self) -> str:
        return " > ".join(self.path)


@dataclass
class ValidationResult:
    """Outcome of validate_application."""

    accepted: bool
    application: Optional[ValidatedApplication] = None
    violations: List[Violation] = field(default_factory=list)

    def kinds(self) -> List[str]:
        return [v.kind for v in self.violations]


def _file_path(file: File, components: Dict[str, Component]) -> Path:
    if file.filename in components:
        return (f"component:{file.filename}", f"file:{file.filename}")
    return (f"file:{file.filename}",)


def _check_index_fields(
    names: List[str],
    label: str,
    model: Model,
    path: Path,
    issues: List[Violation],
) -> None:
    index_path = path + (f"index:{label}",)
    if not names:
        issues.append(
            Violation(
                kind="EmptyIndex",
                path=index_path,
                message=f"{model.name}: {label} has no field names",
            )
        )
        return

    for name in duplicates(names):
        issues.append(
            Violation(
                kind="DuplicateIndexField",
                path=index_path,
                message=f"{model.name}: {label} lists field '{name}' more than once",
                details={"field": name},
            )
        )

    existing = set(model.field_names())
    for name in dict.fromkeys(names):
        if name in existing:
            continue
        if not is_valid_identifier(name):
            issues.append(
                Violation(
                    kind="InvalidIdentifier",
                    path=index_path,
                    message=f"{model.name}: {label} field name '{name}' is not a valid identifier",
                    details={"field": name},
                )
            )
        else:
            issues.append(
                Violation(
                    kind="UnknownIndexField",
                    path=index_path,
                    message=f"{model.name}: {label} references unknown field '{name}'",
                    details={"field": name},
                )
            )


def check_model(model: Model, path: Path, known_models: Set[str]) -> List[Violation]:
    """
    Model-local checks: names, types, field uniqueness, references, indexes.

    Args:
        model: Model to check
        path: Entity path of the model (ends with ``model:<name>``)
        known_models: Model names a foreign field may target

    Returns:
        List of Violation objects (empty if the model is sound)
    """
    issues: List[Violation] = []

    if not is_valid_identifier(model.name):
        issues.append(
            Violation(
                kind="InvalidIdentifier",
                path=path,
                message=f"Model name '{model.name}' must match ^[a-z][a-z0-9_]*$",
                details={"model": model.name},
            )
        )

    for f in model.fields():
        if not is_valid_identifier(f.name):
            issues.append(
                Violation(
                    kind="InvalidIdentifier",
                    path=path + (f"field:{f.name}",),
                    message=f"{model.name}: field name '{f.name}' must match ^[a-z][a-z0-9_]*$",
                    details={"model": model.name, "field": f.name},
                )
            )

    for name in duplicates(model.field_names()):
        issues.append(
            Violation(
                kind="DuplicateField",
                path=path + (f"field:{name}",),
                message=f"{model.name}: duplicate field name '{name}'",
                details={"model": model.name, "field": name},
            )
        )

    for pf in model.plain_fields:
        if not is_known_scalar_type(pf.type):
            issues.append(
                Violation(
                    kind="UnknownScalarType",
                    path=path + (f"field:{pf.name}",),
                    message=(
                        f"{model.name}.{pf.name}: unknown type '{pf.type}' "
                        f"(expected boolean, int, double, string, uri, uuid or datetime)"
                    ),
                    details={"model": model.name, "field": pf.name, "type": pf.type},
                )
            )

    for fk in model.foreign_fields:
        fk_path = path + (f"field:{fk.name}",)
        if not is_valid_relation_name(fk.relation.name):
            issues.append(
                Violation(
                    kind="InvalidRelationName",
                    path=fk_path,
                    message=(
                        f"{model.name}.{fk.name}: relation name '{fk.relation.name}' "
                        f"must match ^[a-zA-Z_][a-zA-Z0-9_]*$"
                    ),
                    details={"model": model.name, "field": fk.name, "relation": fk.relation.name},
                )
            )
        mapping = fk.relation.mapping_name
        if mapping is not None and not is_valid_relation_name(mapping):
            issues.append(
                Violation(
                    kind="InvalidRelationName",
                    path=path + (f"relation:{fk.relation.name}",),
                    message=(
                        f"{model.name}.{fk.name}: mappingName {mapping!r} "
                        f"must match ^[a-zA-Z_][a-zA-Z0-9_]*$"
                    ),
                    details={"model": model.name, "field": fk.name, "mappingName": mapping},
                )
            )
        if fk.relation.target_model not in known_models:
            issues.append(
                Violation(
                    kind="DanglingReference",
                    path=fk_path,
                    message=(
                        f"{model.name}.{fk.name}: relation '{fk.relation.name}' targets "
                        f"missing model '{fk.relation.target_model}'"
                    ),
                    details={
                        "model": model.name,
                        "field": fk.name,
                        "target": fk.relation.target_model,
                    },
                )
            )

    issues.extend(_check_relation_disambiguation(model, path))

    for i, idx in enumerate(model.unique_indexes):
        _check_index_fields(idx.field_names, f"unique[{i}]", model, path, issues)
    for i, idx in enumerate(model.plain_indexes):
        _check_index_fields(idx.field_names, f"plain[{i}]", model, path, issues)

    types = model.field_types()
    for i, gin in enumerate(model.gin_indexes):
        label = f"gin[{i}]"
        if not gin.field_name:
            _check_index_fields([], label, model, path, issues)
        elif gin.field_name not in types:
            _check_index_fields([gin.field_name], label, model, path, issues)
        elif not is_text_type(types[gin.field_name]):
            issues.append(
                Violation(
                    kind="NonTextFullTextField",
                    path=path + (f"index:{label}",),
                    message=(
                        f"{model.name}: full-text index on '{gin.field_name}' requires a string "
                        f"field, got '{types[gin.field_name]}'"
                    ),
                    details={"field": gin.field_name, "type": types[gin.field_name]},
                )
            )

    return issues


def _check_relation_disambiguation(model: Model, path: Path) -> List[Violation]:
    """Foreign fields sharing a target need distinct, non-empty mapping names."""
    issues: List[Violation] = []
    by_target: Dict[str, list] = {}
    for fk in model.foreign_fields:
        by_target.setdefault(fk.relation.target_model, []).append(fk)

    for target, fks in by_target.items():
        if len(fks) < 2:
            continue
        seen: Set[str] = set()
        for fk in fks:
            mapping = fk.relation.mapping_name
            if not mapping or mapping in seen:
                issues.append(
                    Violation(
                        kind="AmbiguousRelation",
                        path=path + (f"field:{fk.name}",),
                        message=(
                            f"{model.name}.{fk.name}: {len(fks)} foreign fields target "
                            f"'{target}'; each needs a distinct mappingName "
                            f"(got {mapping!r})"
                        ),
                        details={"model": model.name, "field": fk.name, "target": target},
                    )
                )
            if mapping:
                seen.add(mapping)
    return issues


def _check_member_names(
    models: Iterable[Tuple[Path, Model]],
    all_models: List[Model],
) -> List[Violation]:
    """Relation properties and back references must not collide with other model members."""
    issues: List[Violation] = []
    back_refs = collect_back_references(all_models)
    for path, model in models:
        fields = set(model.field_names())
        taken: Set[str] = set()
        members = [(fk.relation.name, f"relation of '{fk.name}'") for fk in model.foreign_fields]
        members += [
            (ref.name, f"back reference from '{ref.source.name}.{ref.field.name}'")
            for ref in back_refs.get(model.name, [])
        ]
        for name, origin in members:
            if name in fields or name in taken:
                issues.append(
                    Violation(
                        kind="RelationNameConflict",
                        path=path + (f"relation:{name}",),
                        message=f"{model.name}: {origin} is named '{name}', which is already taken",
                        details={"model": model.name, "member": name},
                    )
                )
            taken.add(name)
    return issues


def validate_application(
    application: Application,
    components: List[Component],
) -> ValidationResult:
    """
    Validate a complete Application against its component plan.

    Every check runs; the result carries all violations found.

    Args:
        application: Candidate Application
        components: The component plan the application must realise

    Returns:
        ValidationResult (accepted with a ValidatedApplication, or the violations)
    """
    issues: List[Violation] = []
    by_component = {c.filename: c for c in components}

    # Files: names, emptiness, duplicates, correspondence
    seen_files: Set[str] = set()
    for file in application.files:
        fpath = _file_path(file, by_component)
        if not is_valid_filename(file.filename):
            issues.append(
                Violation(
                    kind="InvalidFilename",
                    path=fpath,
                    message=f"Filename '{file.filename}' must match ^[a-zA-Z0-9._-]+\\.prisma$",
                    details={"filename": file.filename},
                )
            )
        if file.filename in seen_files:
            issues.append(
                Violation(
                    kind="DuplicateFile",
                    path=fpath,
                    message=f"File '{file.filename}' appears more than once",
                    details={"filename": file.filename},
                )
            )
        seen_files.add(file.filename)
        if not file.models:
            issues.append(
                Violation(
                    kind="EmptyFile",
                    path=fpath,
                    message=f"File '{file.filename}' contains no models",
                    details={"filename": file.filename},
                )
            )
        if file.filename not in by_component:
            issues.append(
                Violation(
                    kind="UnexpectedFile",
                    path=fpath,
                    message=f"File '{file.filename}' does not belong to any component",
                    details={"filename": file.filename},
                )
            )

    for component in components:
        cpath = (f"component:{component.filename}",)
        file = application.find_file(component.filename)
        if file is None:
            issues.append(
                Violation(
                    kind="MissingFile",
                    path=cpath,
                    message=f"No file generated for component '{component.filename}'",
                    details={"filename": component.filename},
                )
            )
            continue
        fpath = cpath + (f"file:{file.filename}",)
        if file.namespace != component.namespace:
            issues.append(
                Violation(
                    kind="NamespaceMismatch",
                    path=fpath,
                    message=(
                        f"File '{file.filename}' has namespace '{file.namespace}', "
                        f"component expects '{component.namespace}'"
                    ),
                    details={"expected": component.namespace, "actual": file.namespace},
                )
            )
        issues.extend(_check_ownership(file.model_names(), component, fpath))

    # Global model name uniqueness
    names = application.model_names()
    dup_names = set(duplicates(names))
    reported: Set[str] = set()
    for file, model in application.models():
        if model.name not in dup_names:
            continue
        if model.name in reported:
            issues.append(
                Violation(
                    kind="DuplicateModel",
                    path=_file_path(file, by_component) + (f"model:{model.name}",),
                    message=f"Model '{model.name}' is declared more than once",
                    details={"model": model.name, "filename": file.filename},
                )
            )
        reported.add(model.name)

    # Per-model checks
    known = set(names)
    located = [
        (_file_path(file, by_component) + (f"model:{model.name}",), model)
        for file, model in application.models()
    ]
    for path, model in located:
        issues.extend(check_model(model, path, known))
    issues.extend(_check_member_names(located, [m for _, m in located]))

    if issues:
        logger.warning(f"Schema validation found {len(issues)} violations")
        return ValidationResult(accepted=False, violations=issues)

    logger.info(
        f"Schema validation passed ({len(application.files)} files, {len(names)} models)"
    )
    return ValidationResult(
        accepted=True,
        application=ValidatedApplication.issue(application, components),
    )


def _check_ownership(
    model_names: List[str],
    component: Component,
    fpath: Path,
    others: Optional[List[Component]] = None,
) -> List[Violation]:
    """Set equality between a file's models and its component's tables."""
    issues: List[Violation] = []
    present = set(model_names)
    owners = {t: c.filename for c in (others or []) for t in c.tables}

    for table in component.tables:
        if table not in present:
            issues.append(
                Violation(
                    kind="MissingModel",
                    path=fpath + (f"model:{table}",),
                    message=f"Component '{component.filename}' requires model '{table}', which is missing",
                    details={"model": table},
                )
            )
    required = set(component.tables)
    for name in dict.fromkeys(model_names):
        if name in required:
            continue
        details = {"model": name}
        message = f"Model '{name}' is not owned by component '{component.filename}'"
        if name in owners:
            details["owner"] = owners[name]
            message += f" (it belongs to '{owners[name]}')"
        issues.append(
            Violation(
                kind="UnexpectedModel",
                path=fpath + (f"model:{name}",),
                message=message,
                details=details,
            )
        )
    return issues


def validate_candidate(
    target: Component,
    others: List[Component],
    candidate: CandidateModels,
) -> List[Violation]:
    """
    Check one producer reply in isolation from other components' content.

    References are resolved against the static union of every component's
    tables, so components can be generated independently.

    Args:
        target: Component the candidate was produced for
        others: Every other component (read-only ownership boundaries)
        candidate: Producer reply

    Returns:
        List of Violation objects (empty if the candidate is acceptable)
    """
    issues: List[Violation] = []
    fpath = (f"component:{target.filename}", f"file:{target.filename}")
    names = [m.name for m in candidate.models]

    if not candidate.models:
        issues.append(
            Violation(
                kind="EmptyFile",
                path=fpath,
                message=f"Candidate for '{target.filename}' contains no models",
                details={"filename": target.filename},
            )
        )

    required = set(target.tables)
    for label, listed in (
        ("tablesToCreate", candidate.tables_to_create),
        ("confirmedTables", candidate.confirmed_tables),
    ):
        if listed and set(listed) != required:
            issues.append(
                Violation(
                    kind="ConfirmationMismatch",
                    path=fpath,
                    message=(
                        f"{label} {sorted(set(listed))} does not match the component's "
                        f"tables {sorted(required)}"
                    ),
                    details={"step": label},
                )
            )

    issues.extend(_check_ownership(names, target, fpath, others))

    for name in duplicates(names):
        issues.append(
            Violation(
                kind="DuplicateModel",
                path=fpath + (f"model:{name}",),
                message=f"Model '{name}' is declared more than once",
                details={"model": name},
            )
        )

    known = {t for c in [target, *others] for t in c.tables}
    located = [(fpath + (f"model:{m.name}",), m) for m in candidate.models]
    for path, model in located:
        issues.extend(check_model(model, path, known))
    issues.extend(_check_member_names(located, candidate.models))

    if issues:
        logger.warning(f"Candidate for {target.filename} has {len(issues)} violations")
    else:
        logger.info(f"Candidate for {target.filename} passed validation")
    return issues
