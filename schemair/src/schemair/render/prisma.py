"""Render validated schema IR as Prisma Schema Language source."""

from typing import Dict, List
from schemair.ir.rules import is_known_scalar_type, is_valid_relation_name
from schemair.ir.schema import (
    Application,
    BackReference,
    File,
    ForeignField,
    Model,
    PlainField,
    ValidatedApplication,
    collect_back_references,
)
from schemair.config.logging import get_logger

logger = get_logger(__name__)

SCALAR_TO_PRISMA = {
    "boolean": "Boolean",
    "int": "Int",
    "double": "Float",
    "string": "String",
    "uri": "String",
    "uuid": "String",
    "datetime": "DateTime",
}

SCALAR_ATTRIBUTES = {
    "uri": "@db.VarChar(80000)",
    "uuid": "@db.Uuid",
    "datetime": "@db.Timestamptz",
}

INDENT = "  "


class RenderError(RuntimeError):
    """Raised when validated IR turns out to be inconsistent at render time."""

    pass


def _comment(text: str, indent: str = "") -> List[str]:
    lines = text.strip().splitlines() or [""]
    return [f"{indent}/// {line}".rstrip() for line in lines]


def _plain_column(field: PlainField) -> str:
    if not is_known_scalar_type(field.type):
        raise RenderError(f"Unknown scalar type '{field.type}' on field '{field.name}'")
    parts = [field.name, SCALAR_TO_PRISMA[field.type] + ("?" if field.nullable else "")]
    if field.type in SCALAR_ATTRIBUTES:
        parts.append(SCALAR_ATTRIBUTES[field.type])
    return " ".join(parts)


def _foreign_column(field: ForeignField) -> str:
    parts = [field.name, "String" + ("?" if field.nullable else ""), "@db.Uuid"]
    if field.unique:
        parts.append("@unique")
    return " ".join(parts)


def _mapping_label(field: ForeignField) -> str:
    mapping = field.relation.mapping_name
    if not is_valid_relation_name(mapping):
        raise RenderError(f"Relation mapping name {mapping!r} on '{field.name}' cannot be rendered")
    return f'"{mapping}"'


def _relation_line(field: ForeignField) -> str:
    args = []
    if field.relation.mapping_name:
        args.append(_mapping_label(field))
    args.append(f"fields: [{field.name}]")
    args.append("references: [id]")
    args.append("onDelete: Cascade")
    target = field.relation.target_model + ("?" if field.nullable else "")
    return f"{field.relation.name} {target} @relation({', '.join(args)})"


def _back_reference_line(ref: BackReference) -> str:
    suffix = "?" if ref.field.unique else "[]"
    line = f"{ref.name} {ref.source.name}{suffix}"
    if ref.field.relation.mapping_name:
        line += f" @relation({_mapping_label(ref.field)})"
    return line


def render_model(
    model: Model,
    namespace: str,
    back_references: List[BackReference],
) -> str:
    """
    Render one model block.

    Args:
        model: Model to render
        namespace: Namespace of the file the model lives in
        back_references: Opposite relation properties pointing at this model

    Returns:
        PSL text for the model (no trailing newline)
    """
    lines = _comment(model.description)
    lines.append("///")
    lines.append(f"/// @namespace {namespace}")
    if model.material:
        lines.append("/// @hidden")
    lines.append(f"model {model.name} {{")

    lines.append(f"{INDENT}//----")
    lines.append(f"{INDENT}// COLUMNS")
    lines.append(f"{INDENT}//----")
    columns = [(model.primary_field.description, f"{model.primary_field.name} String @id @db.Uuid")]
    columns += [(f.description, _foreign_column(f)) for f in model.foreign_fields]
    columns += [(f.description, _plain_column(f)) for f in model.plain_fields]
    for i, (description, column) in enumerate(columns):
        if i:
            lines.append("")
        lines.extend(_comment(description, INDENT))
        lines.append(INDENT + column)

    relations = [_relation_line(f) for f in model.foreign_fields]
    relations += [_back_reference_line(ref) for ref in back_references]
    if relations:
        lines.append("")
        lines.append(f"{INDENT}//----")
        lines.append(f"{INDENT}// RELATIONS")
        lines.append(f"{INDENT}//----")
        lines.extend(INDENT + r for r in relations)

    indexes = [f"@@unique([{', '.join(i.field_names)}])" for i in model.unique_indexes]
    indexes += [f"@@index([{', '.join(i.field_names)}])" for i in model.plain_indexes]
    indexes += [
        f'@@index([{i.field_name}(ops: raw("gin_trgm_ops"))], type: Gin)'
        for i in model.gin_indexes
    ]
    if indexes:
        lines.append("")
        lines.extend(INDENT + i for i in indexes)

    lines.append("}")
    return "\n".join(lines)


def render_file(file: File, application: Application) -> str:
    """Render every model of ``file``; back references are drawn from the whole application."""
    all_models = [m for _, m in application.models()]
    names = {m.name for m in all_models}
    back_refs = collect_back_references(all_models)
    for target in back_refs:
        if target not in names:
            raise RenderError(f"Relation target '{target}' does not exist in the application")

    blocks = [render_model(m, file.namespace, back_refs.get(m.name, [])) for m in file.models]
    return "\n\n".join(blocks) + "\n"


def render_application(validated: ValidatedApplication) -> Dict[str, str]:
    """
    Render a validated application, one text per file.

    Args:
        validated: Output of validate_application

    Returns:
        Mapping from filename to PSL source, in file order

    Raises:
        RenderError: If the input was not issued by validate_application or is
            internally inconsistent
    """
    if not isinstance(validated, ValidatedApplication):
        raise RenderError(
            f"render_application expects a ValidatedApplication, got {type(validated).__name__}"
        )
    if not validated.issued:
        raise RenderError("ValidatedApplication was not issued by validate_application")

    application = validated.application
    rendered: Dict[str, str] = {}
    for file in application.files:
        if file.filename in rendered:
            raise RenderError(f"Duplicate file '{file.filename}' in validated application")
        rendered[file.filename] = render_file(file, application)

    logger.info(f"Rendered {len(rendered)} schema files")
    return rendered
