from __future__ import annotations

import keyword
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from typing_extensions import Any, FrozenSet, List, Mapping, Optional, Tuple

from ..exceptions import ConfigurationConflict
from ..utils import NamingRegistry


class Multiplicity(str, Enum):
    """How many values a property holds, seen from its owning class."""

    SCALAR = "scalar"
    TO_ONE = "to-one"
    TO_MANY = "to-many"


class Cardinality(str, Enum):
    """
    Multiplicity of a property relation. Relation cardinalities are given from the perspective
    of the class owning the property, e.g. MANY_TO_ONE means many owners share one value.
    """

    SCALAR = "scalar"
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_ONE = "many-to-one"
    MANY_TO_MANY = "many-to-many"

    @property
    def multiplicity(self) -> Multiplicity:
        if self == Cardinality.SCALAR:
            return Multiplicity.SCALAR
        if self in (Cardinality.ONE_TO_ONE, Cardinality.MANY_TO_ONE):
            return Multiplicity.TO_ONE
        return Multiplicity.TO_MANY

    @classmethod
    def parse(cls, hint: str) -> Cardinality:
        """
        Parse a cardinality hint, either one of the enum values or a bounds notation
        like ``(0..1)`` or ``(1..*)`` as used in GoodRelations labels.

        :param hint: The hint to parse.
        :return: The cardinality.
        :raises ValueError: When the hint is not understood.
        """
        normalized = hint.strip().lower().replace("_", "-")
        for cardinality in cls:
            if cardinality.value == normalized:
                return cardinality
        compact = re.sub(r"\s+", "", normalized)
        if compact in _NOTATIONS:
            return cls(_NOTATIONS[compact])
        raise ValueError(f"Unknown cardinality {hint!r}")


_NOTATIONS = {
    "(0..1)": Cardinality.ONE_TO_ONE.value,
    "(1..1)": Cardinality.ONE_TO_ONE.value,
    "(0..*)": Cardinality.ONE_TO_MANY.value,
    "(1..*)": Cardinality.ONE_TO_MANY.value,
    "(*..0)": Cardinality.MANY_TO_ONE.value,
    "(*..1)": Cardinality.MANY_TO_ONE.value,
    "(*..*)": Cardinality.MANY_TO_MANY.value,
}
"""
Bounds notation used in configuration hints and in GoodRelations labels.
"""


class Primitive(str, Enum):
    """Primitive value kinds a vocabulary datatype maps to."""

    TEXT = "text"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    DATE = "date"
    DATE_TIME = "date-time"
    TIME = "time"
    URL = "url"

    @property
    def python_type(self) -> str:
        return _PRIMITIVE_PYTHON_TYPES[self]


_PRIMITIVE_PYTHON_TYPES = {
    Primitive.TEXT: "str",
    Primitive.BOOLEAN: "bool",
    Primitive.INTEGER: "int",
    Primitive.FLOAT: "float",
    Primitive.DATE: "datetime.date",
    Primitive.DATE_TIME: "datetime.datetime",
    Primitive.TIME: "datetime.time",
    Primitive.URL: "str",
}


class ValueKind(str, Enum):
    UNTYPED = "untyped"
    PRIMITIVE = "primitive"
    ENUM = "enum"
    REFERENCE = "reference"


@dataclass(frozen=True)
class ValueType:
    """
    Resolved value type of a property. References carry the name of the referenced class,
    never its body, so self and cyclic references need no special handling.
    """

    kind: ValueKind
    primitive: Optional[Primitive] = None
    class_name: Optional[str] = None
    """
    Name of the referenced generated class, for enum and reference kinds.
    """
    uri: Optional[str] = None
    """
    The range URI this value type was resolved from, if any.
    """

    @classmethod
    def untyped(cls) -> ValueType:
        return cls(ValueKind.UNTYPED)

    @classmethod
    def of_primitive(cls, primitive: Primitive, uri: Optional[str] = None) -> ValueType:
        return cls(ValueKind.PRIMITIVE, primitive=primitive, uri=uri)

    @classmethod
    def reference(cls, class_name: str, uri: Optional[str] = None) -> ValueType:
        return cls(ValueKind.REFERENCE, class_name=class_name, uri=uri)

    @classmethod
    def enum(cls, class_name: str, uri: Optional[str] = None) -> ValueType:
        return cls(ValueKind.ENUM, class_name=class_name, uri=uri)

    @property
    def is_untyped(self) -> bool:
        return self.kind == ValueKind.UNTYPED

    @property
    def is_primitive(self) -> bool:
        return self.kind == ValueKind.PRIMITIVE

    @property
    def is_reference(self) -> bool:
        return self.kind == ValueKind.REFERENCE

    @property
    def is_enum(self) -> bool:
        return self.kind == ValueKind.ENUM

    @property
    def python_type_hint(self) -> str:
        """The Python annotation of a single value of this type."""
        if self.kind == ValueKind.PRIMITIVE:
            return self.primitive.python_type
        if self.kind in (ValueKind.REFERENCE, ValueKind.ENUM):
            return self.class_name
        return "Any"

    def __str__(self):
        if self.kind == ValueKind.PRIMITIVE:
            return self.primitive.value
        if self.class_name:
            return f"{self.kind.value}:{self.class_name}"
        return self.kind.value


@dataclass(frozen=True)
class PropertyModel:
    """
    Resolved, generation-ready representation of a property of a generated class.
    """

    name: str
    """
    Name of the property, unique within its owning class.
    """
    cardinality: Cardinality = Cardinality.SCALAR
    value_type: ValueType = field(default_factory=ValueType.untyped)
    resource_uri: Optional[str] = None
    """
    URI of the vocabulary property, None for custom properties.
    """
    nullable: bool = True
    """
    False only when the configuration requires the property.
    """
    unique: bool = False
    readable: bool = True
    writable: bool = True
    embedded: bool = False
    """
    The value is an embeddable class stored inside the owner instead of a referenced entity.
    """
    mapped_by: Optional[str] = None
    """
    Name of the property on the referenced class owning the relation. Set on the inverse side.
    """
    inversed_by: Optional[str] = None
    """
    Name of the inverse property on the referenced class. Set on the owning side.
    """
    groups: FrozenSet[str] = frozenset()
    security: Optional[str] = None
    """
    Access-control expression, passed through verbatim.
    """
    custom: bool = False
    """
    The property is user defined, no vocabulary-derived defaults apply.
    """
    comment: Optional[str] = None
    is_id: bool = False
    singular_name: Optional[str] = None
    """
    Singular form of the name, used for per-element accessors of array properties.
    """
    rendering_hints: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    """
    Pass-through options for the renderer, e.g. storage column options.
    """
    owner: Optional[str] = None
    """
    Name of the class the property is attached to.
    """

    def __post_init__(self):
        if self.mapped_by is not None and self.inversed_by is not None:
            raise ConfigurationConflict(
                self.owner or "?",
                "mapped_by and inversed_by are mutually exclusive",
                self.name,
            )
        if not isinstance(self.groups, frozenset):
            object.__setattr__(self, "groups", frozenset(self.groups))
        if not isinstance(self.rendering_hints, MappingProxyType):
            object.__setattr__(
                self, "rendering_hints", MappingProxyType(dict(self.rendering_hints))
            )

    @property
    def multiplicity(self) -> Multiplicity:
        return self.cardinality.multiplicity

    @property
    def is_array(self) -> bool:
        return self.multiplicity == Multiplicity.TO_MANY

    @property
    def is_relation(self) -> bool:
        return self.value_type.is_reference and not self.embedded

    @property
    def field_name(self) -> str:
        """The Python attribute name, keywords get a trailing underscore."""
        name = NamingRegistry.to_identifier(NamingRegistry.to_snake_case(self.name))
        return name + "_" if keyword.iskeyword(name) else name

    @property
    def type_hint(self) -> str:
        """Python annotation of the property as a whole."""
        inner = self.value_type.python_type_hint
        if self.is_array:
            return f"List[{inner}]"
        if self.nullable:
            return f"Optional[{inner}]"
        return inner

    def accessor_names(self) -> Tuple[str, ...]:
        """
        Names of the accessor methods a renderer generates for this property.
        Array properties get per-element adder and remover named after the singular form.
        """
        names: List[str] = []
        if self.writable:
            if self.is_array:
                singular = NamingRegistry.to_snake_case(self.singular_name or self.name)
                names.extend([f"add_{singular}", f"remove_{singular}"])
            else:
                names.append(f"set_{self.field_name}")
        if self.readable:
            names.append(f"get_{self.field_name}")
        return tuple(names)


@dataclass(frozen=True)
class ClassModel:
    """
    Resolved, generation-ready representation of a generated class. Built once per run and
    read-only once handed to the render sink.
    """

    name: str
    resource_uri: Optional[str] = None
    """
    URI of the vocabulary class, None for custom types.
    """
    parent: Optional[str] = None
    """
    Name of the generated parent class, if any.
    """
    properties: Tuple[PropertyModel, ...] = ()
    """
    Vocabulary properties in declaration order followed by configuration-only properties.
    """
    abstract: bool = False
    embeddable: bool = False
    comment: Optional[str] = None
    identifier: Optional[PropertyModel] = None
    """
    Generated identifier property, if the class gets one.
    """
    operations: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    security: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    """
    Arbitrary pass-through data consumed by renderers.
    """

    def __post_init__(self):
        seen = set()
        for prop in self.properties:
            if prop.name in seen:
                raise ConfigurationConflict(
                    self.name, "property is declared twice", prop.name
                )
            seen.add(prop.name)
        object.__setattr__(self, "properties", tuple(self.properties))
        for name in ("operations", "metadata"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value or {})))

    @property
    def is_custom(self) -> bool:
        return self.resource_uri is None

    @property
    def property_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.properties)

    def get_property(self, name: str) -> Optional[PropertyModel]:
        return next((p for p in self.properties if p.name == name), None)

    def references(self) -> Tuple[str, ...]:
        """Names of the classes referenced by properties of this class, in property order."""
        return tuple(
            dict.fromkeys(
                p.value_type.class_name
                for p in self.properties
                if p.value_type.class_name and p.value_type.class_name != self.name
            )
        )
