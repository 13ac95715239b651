"""Schema IR: applications, files, models, fields and indexes.

The JSON shape uses the camelCase keys a function-calling producer emits
(``primaryField``, ``foreignFields``, ``targetModel`` ...). Python attributes are
snake_case; both spellings are accepted on input.
"""

from collections import Counter
from typing import Dict, Iterator, List, Literal, NamedTuple, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


class IRModel(BaseModel):
    """Base for every IR record: immutable, alias-aware."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class PrimaryField(IRModel):
    """The single UUID primary key of a model (conventionally ``id``)."""

    name: str = "id"
    type: Literal["uuid"] = "uuid"
    description: str = "Primary Key."


class Relation(IRModel):
    """How a foreign field joins its target model."""

    name: str  # relation property, e.g. "customer"
    target_model: str = Field(alias="targetModel")
    mapping_name: Optional[str] = Field(default=None, alias="mappingName")


class ForeignField(IRModel):
    """A UUID column pointing at another model's primary key."""

    name: str
    type: Literal["uuid"] = "uuid"
    description: str
    relation: Relation
    unique: bool = False  # one-to-one when true
    nullable: bool = False


class PlainField(IRModel):
    """A regular data column."""

    name: str
    type: str  # checked against rules.SCALAR_TYPES by the validator
    description: str
    nullable: bool = False


class UniqueIndex(IRModel):
    field_names: List[str] = Field(alias="fieldNames")
    unique: Literal[True] = True


class PlainIndex(IRModel):
    field_names: List[str] = Field(alias="fieldNames")


class GinIndex(IRModel):
    """Full-text (trigram) index on a single string field."""

    field_name: str = Field(alias="fieldName")


Index = Union[UniqueIndex, PlainIndex, GinIndex]
AnyField = Union[PrimaryField, ForeignField, PlainField]


class Model(IRModel):
    """A database table."""

    name: str
    description: str
    material: bool = False
    primary_field: PrimaryField = Field(alias="primaryField")
    foreign_fields: List[ForeignField] = Field(default_factory=list, alias="foreignFields")
    plain_fields: List[PlainField] = Field(default_factory=list, alias="plainFields")
    unique_indexes: List[UniqueIndex] = Field(default_factory=list, alias="uniqueIndexes")
    plain_indexes: List[PlainIndex] = Field(default_factory=list, alias="plainIndexes")
    gin_indexes: List[GinIndex] = Field(default_factory=list, alias="ginIndexes")

    def fields(self) -> List[AnyField]:
        """All fields in declaration order: primary, foreign, plain."""
        return [self.primary_field, *self.foreign_fields, *self.plain_fields]

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields()]

    def field_types(self) -> dict:
        """Field name -> scalar type (first declaration wins on duplicates)."""
        types = {}
        for f in self.fields():
            types.setdefault(f.name, f.type)
        return types

    def indexes(self) -> List[Index]:
        """All indexes in render order: unique, plain, GIN."""
        return [*self.unique_indexes, *self.plain_indexes, *self.gin_indexes]


class File(IRModel):
    """A namespaced schema file holding one domain's models."""

    filename: str
    namespace: str
    models: List[Model] = Field(default_factory=list)

    def model_names(self) -> List[str]:
        return [m.name for m in self.models]


class Application(IRModel):
    """The whole schema: an ordered list of files."""

    files: List[File] = Field(default_factory=list)

    def models(self) -> Iterator[Tuple[File, Model]]:
        for file in self.files:
            for model in file.models:
                yield file, model

    def model_names(self) -> List[str]:
        return [model.name for _, model in self.models()]

    def find_model(self, name: str) -> Optional[Model]:
        for _, model in self.models():
            if model.name == name:
                return model
        return None

    def find_file(self, filename: str) -> Optional[File]:
        for file in self.files:
            if file.filename == filename:
                return file
        return None


class BackReference(NamedTuple):
    """The implicit opposite side of a foreign field, rendered on the target model."""

    name: str
    source: Model
    field: ForeignField


def back_reference_name(source: Model, field: ForeignField) -> str:
    """
    Name of the opposite relation property placed on ``field``'s target.

    A lone link between two distinct models is named after the source model;
    self-references and parallel links get ``{source}_of_{relation}``.
    """
    target = field.relation.target_model
    parallel = sum(1 for f in source.foreign_fields if f.relation.target_model == target)
    if parallel == 1 and source.name != target:
        return source.name
    return f"{source.name}_of_{field.relation.name}"


def collect_back_references(models: List[Model]) -> Dict[str, List[BackReference]]:
    """Target model name -> back references, in model then field declaration order."""
    refs: Dict[str, List[BackReference]] = {}
    for model in models:
        for fk in model.foreign_fields:
            refs.setdefault(fk.relation.target_model, []).append(
                BackReference(back_reference_name(model, fk), model, fk)
            )
    return refs


def duplicates(names: List[str]) -> List[str]:
    """Names occurring more than once, in first-seen order."""
    counts = Counter(names)
    return [n for n in dict.fromkeys(names) if counts[n] > 1]


class Component(IRModel):
    """Planning record: the tables one schema file is responsible for."""

    filename: str
    namespace: str
    tables: List[str] = Field(min_length=1)


class ValidatedApplication(IRModel):
    """
    An Application that passed validation against its component plan.

    Only ``schemair.ir.validators.validate_application`` issues one (via
    ``issue``). Instances built directly through the constructor are not marked
    as issued and the renderer refuses them.
    """

    application: Application
    components: List[Component]

    _issued: bool = PrivateAttr(default=False)

    @classmethod
    def issue(cls, application: Application, components: List[Component]) -> "ValidatedApplication":
        validated = cls(application=application, components=list(components))
        validated._issued = True
        return validated

    @property
    def issued(self) -> bool:
        return self._issued


class CandidateModels(BaseModel):
    """
    A producer's reply for one component.

    The enumerate / review / confirm steps make the producer restate its table
    ownership before emitting models; the validator cross-checks all three.
    """

    model_config = ConfigDict(populate_by_name=True)

    tables_to_create: List[str] = Field(default_factory=list, alias="tablesToCreate")
    validation_review: str = Field(default="", alias="validationReview")
    confirmed_tables: List[str] = Field(default_factory=list, alias="confirmedTables")
    models: List[Model]
