"""
Typed configuration of a generation run and its loading from the YAML file format.

Keys may be written in camelCase, as in ``schema.yaml`` files, or in snake_case.
Absent property fields are None and mean "derive from the vocabulary".
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields

import yaml
from typing_extensions import Any, Dict, FrozenSet, List, Mapping, Optional, Union

from . import logger
from .exceptions import ConfigurationError
from .model import Primitive
from .utils import NamingRegistry

DEFAULT_VOCABULARY_NAMESPACE = "https://schema.org/"
DEFAULT_VOCABULARY = "https://schema.org/version/latest/schemaorg-current-https.rdf"
DEFAULT_RELATIONS = "https://archive.org/services/purl/goodrelations/v1.owl"
ID_STRATEGIES = ("auto", "uuid", "mongoid", "none")


@dataclass
class VocabularySource:
    """A vocabulary or auxiliary ontology document to load."""

    uri: str
    """
    Path or URL of the document.
    """
    format: Optional[str] = None
    """
    rdflib format name, guessed from the file name when None.
    """


@dataclass
class IdConfig:
    """Configuration of the generated identifier property."""

    generate: bool = True
    strategy: str = "auto"
    writable: bool = False


@dataclass
class PropertyConfig:
    """
    User overrides for one property. Every field left to None keeps the vocabulary-derived value.
    """

    name: str
    exclude: bool = False
    range: Optional[str] = None
    """
    URI or generated type name overriding the vocabulary ranges.
    """
    cardinality: Optional[str] = None
    """
    Cardinality hint, see :meth:`Cardinality.parse`.
    """
    nullable: Optional[bool] = None
    required: Optional[bool] = None
    unique: Optional[bool] = None
    readable: Optional[bool] = None
    writable: Optional[bool] = None
    groups: Optional[FrozenSet[str]] = None
    security: Optional[str] = None
    mapped_by: Optional[str] = None
    inversed_by: Optional[str] = None
    embedded: Optional[bool] = None
    custom: bool = False
    """
    Do not attempt vocabulary resolution, the property is user defined.
    """
    rendering_hints: Dict[str, Any] = field(default_factory=dict)
    """
    Any other key, passed through to the renderer verbatim (e.g. orm_column).
    """

    @property
    def effective_nullable(self) -> Optional[bool]:
        if self.nullable is not None:
            return self.nullable
        if self.required is not None:
            return not self.required
        return None


@dataclass
class TypeConfig:
    """User configuration of one generated type."""

    name: str
    exclude: bool = False
    vocabulary_namespace: Optional[str] = None
    custom: bool = False
    """
    The type is user defined and not looked up in the vocabulary.
    """
    abstract: bool = False
    embeddable: bool = False
    parent: Union[None, bool, str] = None
    """
    None derives the parent from the vocabulary, False forces no parent, a name overrides it.
    """
    all_properties: bool = True
    """
    Keep every vocabulary property of the type, not only the configured ones.
    """
    operations: Dict[str, Any] = field(default_factory=dict)
    security: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    properties: Dict[str, PropertyConfig] = field(default_factory=dict)

    def uri(self, default_namespace: str) -> str:
        return (self.vocabulary_namespace or default_namespace) + self.name


@dataclass
class Configuration:
    """Configuration of a generation run."""

    types: Dict[str, TypeConfig] = field(default_factory=dict)
    """
    Types to generate, in declaration order.
    """
    vocabularies: List[VocabularySource] = field(
        default_factory=lambda: [VocabularySource(DEFAULT_VOCABULARY, "xml")]
    )
    relations: List[VocabularySource] = field(
        default_factory=lambda: [VocabularySource(DEFAULT_RELATIONS, "xml")]
    )
    vocabulary_namespace: str = DEFAULT_VOCABULARY_NAMESPACE
    id: IdConfig = field(default_factory=IdConfig)
    range_mapping: Dict[str, Primitive] = field(default_factory=dict)
    """
    Range URI to primitive kind overrides applied by the type mapper.
    """
    debug: bool = False
    generator_templates: List[str] = field(default_factory=list)
    """
    Template directories searched before the bundled templates.
    """
    all_types: bool = False
    """
    Also generate every class of the vocabulary namespace that is not configured.
    """

    @property
    def generated_types(self) -> Dict[str, TypeConfig]:
        """The types that are not excluded, in declaration order."""
        return {n: t for n, t in self.types.items() if not t.exclude}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Configuration:
        """
        Build a configuration from a parsed YAML document.

        :param data: The parsed document, None for an empty document.
        :return: The configuration.
        :raises ConfigurationError: When an entry is unknown or of the wrong type.
        """
        data = _normalize_keys(data or {}, "")
        _reject_unknown(data, cls, "")
        kwargs: Dict[str, Any] = {}
        if "vocabularies" in data:
            kwargs["vocabularies"] = _parse_sources(data["vocabularies"], "vocabularies")
        if "relations" in data:
            kwargs["relations"] = _parse_sources(data["relations"], "relations")
        if "vocabulary_namespace" in data:
            kwargs["vocabulary_namespace"] = _expect(
                data["vocabulary_namespace"], str, "vocabulary_namespace"
            )
        if "id" in data:
            kwargs["id"] = _parse_id(data["id"])
        if "range_mapping" in data:
            kwargs["range_mapping"] = _parse_range_mapping(data["range_mapping"])
        for key in ("debug", "all_types"):
            if key in data:
                kwargs[key] = _expect(data[key], bool, key)
        if "generator_templates" in data:
            kwargs["generator_templates"] = [
                _expect(path, str, f"generator_templates[{i}]")
                for i, path in enumerate(
                    _expect(data["generator_templates"] or [], list, "generator_templates")
                )
            ]
        types = _expect(data.get("types") or {}, dict, "types")
        kwargs["types"] = {
            str(name): _parse_type(str(name), type_data)
            for name, type_data in types.items()
        }
        return cls(**kwargs)


def load_configuration(path: str) -> Configuration:
    """
    Load a configuration file.

    :param path: Path of the YAML file.
    :return: The configuration.
    :raises ConfigurationError: When the file cannot be read or parsed.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"cannot read {path}: {exc}") from exc
    if data is not None and not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")
    configuration = Configuration.from_dict(data)
    logger.info(
        f"[configuration] Loaded {path} with {len(configuration.types)} types"
    )
    return configuration


TYPE_KEYS = {f.name for f in fields(TypeConfig)} - {"name"}
PROPERTY_KEYS = {f.name for f in fields(PropertyConfig)} - {"name", "rendering_hints"}


def _parse_type(name: str, data: Optional[Mapping[str, Any]]) -> TypeConfig:
    location = f"types.{name}"
    data = _normalize_keys(_expect(data or {}, dict, location), location)
    unknown = set(data) - TYPE_KEYS
    if unknown:
        raise ConfigurationError(f"unknown keys {sorted(unknown)}", location)
    kwargs: Dict[str, Any] = {}
    for key in ("exclude", "custom", "abstract", "embeddable", "all_properties"):
        if key in data:
            kwargs[key] = _expect(data[key], bool, f"{location}.{key}")
    for key in ("vocabulary_namespace", "security"):
        if data.get(key) is not None:
            kwargs[key] = _expect(data[key], str, f"{location}.{key}")
    if "parent" in data:
        parent = data["parent"]
        if parent is not None and parent is not False:
            parent = _expect(parent, str, f"{location}.parent")
        kwargs["parent"] = parent
    for key in ("operations", "attributes"):
        if data.get(key) is not None:
            kwargs[key] = dict(_expect(data[key], dict, f"{location}.{key}"))
    properties = _expect(data.get("properties") or {}, dict, f"{location}.properties")
    kwargs["properties"] = {
        str(p): _parse_property(str(p), p_data, f"{location}.properties.{p}")
        for p, p_data in properties.items()
    }
    return TypeConfig(name=name, **kwargs)


def _parse_property(
    name: str, data: Optional[Mapping[str, Any]], location: str
) -> PropertyConfig:
    data = _normalize_keys(_expect(data or {}, dict, location), location)
    kwargs: Dict[str, Any] = {}
    hints: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in PROPERTY_KEYS:
            hints[key] = value
            continue
        if value is None:
            continue
        if key in ("exclude", "custom", "nullable", "required", "unique", "readable",
                   "writable", "embedded"):
            kwargs[key] = _expect(value, bool, f"{location}.{key}")
        elif key == "groups":
            groups = [value] if isinstance(value, str) else _expect(value, list, f"{location}.groups")
            kwargs[key] = frozenset(str(g) for g in groups)
        else:
            kwargs[key] = _expect(value, str, f"{location}.{key}")
    return PropertyConfig(name=name, rendering_hints=hints, **kwargs)


def _parse_sources(data: Any, location: str) -> List[VocabularySource]:
    sources = []
    for i, item in enumerate(_expect(data or [], list, location)):
        if isinstance(item, str):
            sources.append(VocabularySource(item))
            continue
        item = _normalize_keys(_expect(item, dict, f"{location}[{i}]"), location)
        if "uri" not in item:
            raise ConfigurationError("missing uri", f"{location}[{i}]")
        sources.append(
            VocabularySource(
                _expect(item["uri"], str, f"{location}[{i}].uri"), item.get("format")
            )
        )
    return sources


def _parse_id(data: Any) -> IdConfig:
    data = _normalize_keys(_expect(data or {}, dict, "id"), "id")
    if "generation_strategy" in data:
        data["strategy"] = data.pop("generation_strategy")
    _reject_unknown(data, IdConfig, "id")
    id_config = IdConfig(
        generate=_expect(data.get("generate", True), bool, "id.generate"),
        strategy=_expect(data.get("strategy", "auto"), str, "id.strategy").lower(),
        writable=_expect(data.get("writable", False), bool, "id.writable"),
    )
    if id_config.strategy not in ID_STRATEGIES:
        raise ConfigurationError(
            f"strategy must be one of {', '.join(ID_STRATEGIES)}", "id.strategy"
        )
    return id_config


def _parse_range_mapping(data: Any) -> Dict[str, Primitive]:
    mapping = {}
    for uri, kind in _expect(data or {}, dict, "range_mapping").items():
        try:
            mapping[str(uri)] = Primitive(str(kind).lower())
        except ValueError as exc:
            raise ConfigurationError(
                f"unknown primitive {kind!r}", f"range_mapping.{uri}"
            ) from exc
    return mapping


def _normalize_keys(data: Mapping[str, Any], location: str) -> Dict[str, Any]:
    normalized = {}
    for key, value in data.items():
        snake = NamingRegistry.to_snake_case(str(key))
        if snake in normalized:
            raise ConfigurationError(f"duplicate key {key!r}", location or None)
        normalized[snake] = value
    return normalized


def _reject_unknown(data: Mapping[str, Any], cls: type, location: str):
    unknown = set(data) - {f.name for f in fields(cls)}
    if unknown:
        raise ConfigurationError(f"unknown keys {sorted(unknown)}", location or None)


def _expect(value: Any, expected: type, location: str) -> Any:
    if not isinstance(value, expected):
        raise ConfigurationError(
            f"expected {expected.__name__}, got {type(value).__name__}", location
        )
    return value
