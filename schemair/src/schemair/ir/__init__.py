"""Schema IR: entities, naming rules and validation."""

from .schema import (
    Application,
    CandidateModels,
    Component,
    File,
    ForeignField,
    GinIndex,
    Model,
    PlainField,
    PlainIndex,
    PrimaryField,
    Relation,
    UniqueIndex,
    ValidatedApplication,
)
from .validators import ValidationResult, Violation, validate_application, validate_candidate

__all__ = [
    "Application",
    "CandidateModels",
    "Component",
    "File",
    "ForeignField",
    "GinIndex",
    "Model",
    "PlainField",
    "PlainIndex",
    "PrimaryField",
    "Relation",
    "UniqueIndex",
    "ValidatedApplication",
    "ValidationResult",
    "Violation",
    "validate_application",
    "validate_candidate",
]
