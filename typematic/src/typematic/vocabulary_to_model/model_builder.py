"""
This module builds the resolved class model of a generation run from the vocabulary graph and the
user configuration. It merges vocabulary declarations with configuration overrides, resolves value
types and cardinalities, and hands every finished class to a render sink.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType

from ordered_set import OrderedSet
from typing_extensions import Dict, List, Optional, Tuple

from .cardinality_resolver import CardinalityResolver
from .ontology_bridge import OntologyBridge
from .type_mapper import TypeMapper
from .. import logger
from ..configuration import Configuration, IdConfig, PropertyConfig, TypeConfig
from ..exceptions import (
    ConfigurationConflict,
    InheritanceCollision,
    RenderFailure,
    TypeBuildFailure,
    UnresolvableReference,
)
from ..inflector import InflectInflector, Inflector
from ..model import (
    Cardinality,
    ClassModel,
    Multiplicity,
    Primitive,
    PropertyModel,
    RenderSink,
    ValueType,
)
from ..report import GenerationReport
from ..utils import NamingRegistry
from ..vocabulary import VocabularyGraph, VocabularyResource

ID_VALUE_TYPES = {
    "auto": Primitive.INTEGER,
    "uuid": Primitive.TEXT,
    "mongoid": Primitive.TEXT,
    "none": Primitive.TEXT,
}


@dataclass
class PropertyPlan:
    """
    A candidate property of a type while the type is being resolved.
    """

    name: str
    config: PropertyConfig
    resource: Optional[VocabularyResource] = None
    """
    The vocabulary property, None for custom properties.
    """
    declared_by: Optional[str] = None
    """
    URI of the vocabulary class declaring the property.
    """
    range_uris: Tuple[str, ...] = ()
    value_type: ValueType = field(default_factory=ValueType.untyped)
    cardinality: Cardinality = Cardinality.SCALAR

    @property
    def custom(self) -> bool:
        return self.resource is None

    @property
    def uri(self) -> Optional[str]:
        return self.resource.uri if self.resource else None


@dataclass
class TypePlan:
    """
    A configured type with its resolved vocabulary resource, parent and candidate properties.
    """

    config: TypeConfig
    resource: Optional[VocabularyResource] = None
    parent: Optional[str] = None
    properties: List[PropertyPlan] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.config.name

    def get_property(self, name: str) -> Optional[PropertyPlan]:
        return next((p for p in self.properties if p.name == name), None)


@dataclass
class ModelBuilder:
    """
    Builds the class models of all configured types, in configuration order.

    Resolution happens over class names: a reference only carries the name of the referenced class,
    so self references and reference cycles need no special handling. A configuration conflict
    or an unexpected error skips the offending type and the types extending it, a render failure
    skips the rendering of one class. The remaining types are still built.
    Every problem ends up in :attr:`report`.
    """

    cardinality_resolver: CardinalityResolver = field(
        default_factory=lambda: CardinalityResolver(OntologyBridge.empty())
    )
    inflector: Inflector = field(default_factory=InflectInflector)
    sink: Optional[RenderSink] = None
    """
    Receives every finished class model, one at a time.
    """
    report: GenerationReport = field(default_factory=GenerationReport)
    """
    Report of the latest build.
    """

    def build(
        self, vocabulary: VocabularyGraph, configuration: Configuration
    ) -> List[ClassModel]:
        """
        Build the class models.

        :param vocabulary: The loaded vocabulary graph.
        :param configuration: The user configuration.
        :return: The built class models in configuration order, skipped types excluded.
        """
        self.report = GenerationReport()
        self._vocabulary = vocabulary
        self._configuration = configuration
        self._types = configuration.generated_types
        self._resources = {
            name: self._resolve_resource(type_config)
            for name, type_config in self._types.items()
        }
        self._type_mapper = TypeMapper(
            generated_classes={
                resource.uri: name
                for name, resource in self._resources.items()
                if resource is not None
            },
            enumerations={
                resource.uri
                for resource in self._resources.values()
                if resource is not None and vocabulary.is_enumeration(resource.uri)
            },
            range_mapping=configuration.range_mapping,
            report=self.report,
        )

        plans: Dict[str, TypePlan] = {}
        for name, type_config in self._types.items():
            try:
                plans[name] = self._plan_type(type_config)
            except ConfigurationConflict as conflict:
                self.report.fail(conflict)
            except Exception as exc:
                self.report.fail(TypeBuildFailure(name, exc))
        for name in self._types_in_parent_cycles(plans):
            self.report.fail(
                ConfigurationConflict(name, "the parent chain loops back to the type")
            )
            del plans[name]

        self._assembled: Dict[str, Optional[ClassModel]] = {}
        models = []
        for name in plans:
            model = self._assembled_model(name, plans)
            if model is None:
                continue
            self.report.built.append(model.name)
            models.append(model)
            self._render(model)
        return models

    def _assembled_model(
        self, name: str, plans: Dict[str, TypePlan]
    ) -> Optional[ClassModel]:
        """
        Assemble a type once its parent chain is assembled. A type whose parent failed fails too,
        its model would extend a class that is never produced.

        :return: The class model, None when the type failed.
        """
        if name in self._assembled:
            return self._assembled[name]
        self._assembled[name] = None
        plan = plans.get(name)
        if plan is None:
            return None
        try:
            if plan.parent is not None and self._assembled_model(plan.parent, plans) is None:
                raise ConfigurationConflict(name, f"parent {plan.parent} could not be built")
            model = self._assemble(plan, plans)
        except ConfigurationConflict as conflict:
            self.report.fail(conflict)
            return None
        except Exception as exc:
            self.report.fail(TypeBuildFailure(name, exc))
            return None
        self._assembled[name] = model
        return model

    def _resolve_resource(self, type_config: TypeConfig) -> Optional[VocabularyResource]:
        if type_config.custom:
            return None
        uri = type_config.uri(self._configuration.vocabulary_namespace)
        resource = self._vocabulary.resource(uri)
        if resource is None or not resource.is_class:
            logger.info(
                f"[model_builder] {type_config.name} not found in the vocabulary as {uri}, "
                f"treating it as a custom type"
            )
            return None
        return resource

    def _plan_type(self, type_config: TypeConfig) -> TypePlan:
        """
        Resolve the resource, the parent and the candidate properties of a type.
        """
        plan = TypePlan(type_config, self._resources[type_config.name])
        plan.parent = self._resolve_parent(plan)
        plan.properties = self._collect_properties(plan)
        for prop in plan.properties:
            self._resolve_value_and_cardinality(plan, prop)
        return plan

    def _resolve_parent(self, plan: TypePlan) -> Optional[str]:
        """
        The explicit override, else the closest vocabulary ancestor that is generated, else none.
        """
        parent = plan.config.parent
        if parent is False:
            return None
        if isinstance(parent, str):
            if parent == plan.name:
                raise ConfigurationConflict(plan.name, "a type cannot be its own parent")
            if parent not in self._types:
                raise ConfigurationConflict(
                    plan.name, f"parent {parent} is not a generated type"
                )
            return parent
        if plan.resource is None:
            return None
        names_by_uri = {
            NamingRegistry.normalize_uri(r.uri): n
            for n, r in self._resources.items()
            if r is not None
        }
        for ancestor in self._vocabulary.ancestors(plan.resource.uri):
            name = names_by_uri.get(NamingRegistry.normalize_uri(ancestor))
            if name is not None and name != plan.name:
                return name
        return None

    def _inlined_classes(self, plan: TypePlan) -> List[str]:
        """
        URIs of the vocabulary classes whose properties are generated in this type: the type itself
        and its ancestors that are not already covered by the parent class.
        """
        own = plan.resource.uri
        covered = OrderedSet()
        parent_resource = self._resources.get(plan.parent) if plan.parent else None
        if parent_resource is not None:
            covered.add(NamingRegistry.normalize_uri(parent_resource.uri))
            covered.update(
                NamingRegistry.normalize_uri(a)
                for a in self._vocabulary.ancestors(parent_resource.uri)
            )
        return [own] + [
            a
            for a in self._vocabulary.ancestors(own)
            if NamingRegistry.normalize_uri(a) not in covered
        ]

    def _collect_properties(self, plan: TypePlan) -> List[PropertyPlan]:
        """
        Merge the vocabulary properties of the type with the configured ones. Vocabulary properties
        keep their declaration order, configuration-only properties are appended in configuration
        order.
        """
        configured = plan.config.properties
        candidates: Dict[str, PropertyPlan] = {}

        if plan.resource is not None:
            for class_uri in self._inlined_classes(plan):
                for resource in self._vocabulary.properties_of(class_uri):
                    name = resource.name
                    if resource.superseded_by and name not in configured:
                        logger.debug(
                            f"[model_builder] Skipping {resource.uri}, superseded by {resource.superseded_by}"
                        )
                        continue
                    if name in candidates:
                        if candidates[name].resource.uri != resource.uri:
                            self.report.warn(
                                InheritanceCollision(
                                    plan.name,
                                    name,
                                    NamingRegistry.local_name(candidates[name].declared_by),
                                    NamingRegistry.local_name(class_uri),
                                )
                            )
                        continue
                    candidates[name] = PropertyPlan(
                        name,
                        configured.get(name) or PropertyConfig(name),
                        resource,
                        declared_by=class_uri,
                    )

        for name, property_config in configured.items():
            if name in candidates:
                if property_config.custom:
                    candidates[name] = PropertyPlan(name, property_config)
                continue
            resource = None
            if plan.resource is not None and not property_config.custom:
                resource = self._vocabulary.resource(
                    (plan.config.vocabulary_namespace or self._configuration.vocabulary_namespace)
                    + name
                )
                if resource is not None and not resource.is_property:
                    resource = None
            if resource is None:
                logger.debug(f"[model_builder] {plan.name}.{name} is a custom property")
            candidates[name] = PropertyPlan(name, property_config, resource)

        return [
            candidate
            for name, candidate in candidates.items()
            if not candidate.config.exclude
            and (plan.config.all_properties or name in configured)
        ]

    def _resolve_value_and_cardinality(self, plan: TypePlan, prop: PropertyPlan):
        """
        Resolve the value type from the configured or declared ranges, then the cardinality from
        the configuration hint or the auxiliary ontology.
        """
        property_config = prop.config
        hint = None
        if property_config.cardinality is not None:
            try:
                hint = Cardinality.parse(property_config.cardinality)
            except ValueError as exc:
                raise ConfigurationConflict(plan.name, str(exc), prop.name) from exc

        subject = prop.uri or f"{plan.name}.{prop.name}"
        is_collection = hint is not None and hint.multiplicity == Multiplicity.TO_MANY
        if property_config.range is not None:
            prop.value_type, prop.range_uris = self._configured_range(
                property_config.range, subject, is_collection
            )
        else:
            prop.range_uris = prop.resource.ranges if prop.resource else ()
            prop.value_type = self._type_mapper.resolve(
                prop.range_uris, is_collection, subject
            )

        if prop.value_type.is_untyped and prop.range_uris:
            self.report.warn(
                UnresolvableReference(
                    plan.name,
                    prop.name,
                    ", ".join(NamingRegistry.local_name(r) for r in prop.range_uris),
                )
            )

        range_is_datatype = not (prop.value_type.is_reference or prop.value_type.is_enum)
        if hint is not None:
            if range_is_datatype and hint.multiplicity == Multiplicity.TO_ONE:
                hint = Cardinality.SCALAR
            prop.cardinality = hint
        elif prop.custom:
            prop.cardinality = self.cardinality_resolver.default(range_is_datatype)
        else:
            prop.cardinality = self.cardinality_resolver.resolve(
                prop.resource.uri, range_is_datatype
            )

    def _configured_range(
        self, configured: str, subject: str, is_collection: bool
    ) -> Tuple[ValueType, Tuple[str, ...]]:
        """
        A configured range is either the name of a generated type or a URI. Custom types have no
        URI, they can only be referenced by name.
        """
        if configured in self._types:
            resource = self._resources[configured]
            if resource is None:
                return ValueType.reference(configured), (configured,)
            return self._type_mapper.resolve([resource.uri], is_collection, subject), (
                resource.uri,
            )
        uri = configured
        if ":" not in configured:
            uri = self._configuration.vocabulary_namespace + configured
        return self._type_mapper.resolve([uri], is_collection, subject), (uri,)

    def _types_in_parent_cycles(self, plans: Dict[str, TypePlan]) -> List[str]:
        in_cycle = []
        for name in plans:
            seen = {name}
            current = plans[name].parent
            while current is not None and current in plans:
                if current in seen:
                    in_cycle.append(name)
                    break
                seen.add(current)
                current = plans[current].parent
        return in_cycle

    def _assemble(self, plan: TypePlan, plans: Dict[str, TypePlan]) -> ClassModel:
        """
        Turn a resolved type into its frozen class model.
        """
        properties = tuple(self._property_model(plan, prop, plans) for prop in plan.properties)
        metadata = {"attributes": MappingProxyType(dict(plan.config.attributes))}
        if plan.resource is not None:
            metadata["label"] = plan.resource.label
            metadata["enumeration"] = self._vocabulary.is_enumeration(plan.resource.uri)
        return ClassModel(
            name=plan.name,
            resource_uri=plan.resource.uri if plan.resource else None,
            parent=plan.parent,
            properties=properties,
            abstract=plan.config.abstract,
            embeddable=plan.config.embeddable,
            comment=plan.resource.comment if plan.resource else None,
            identifier=self._identifier(plan),
            operations=plan.config.operations,
            security=plan.config.security,
            metadata=metadata,
        )

    def _property_model(
        self, plan: TypePlan, prop: PropertyPlan, plans: Dict[str, TypePlan]
    ) -> PropertyModel:
        property_config = prop.config
        if property_config.mapped_by is not None and property_config.inversed_by is not None:
            raise ConfigurationConflict(
                plan.name, "mapped_by and inversed_by are mutually exclusive", prop.name
            )
        if property_config.required and property_config.nullable:
            raise ConfigurationConflict(
                plan.name, "a required property cannot be nullable", prop.name
            )

        if property_config.embedded and not prop.value_type.is_reference:
            raise ConfigurationConflict(
                plan.name, "only class valued properties can be embedded", prop.name
            )
        embedded = self._embedded(prop)

        mapped_by, inversed_by = property_config.mapped_by, property_config.inversed_by
        if (
            mapped_by is None
            and inversed_by is None
            and not embedded
            and prop.value_type.is_reference
        ):
            mapped_by, inversed_by = self._relation_sides(plan, prop, plans)

        nullable = property_config.effective_nullable
        is_array = prop.cardinality.multiplicity == Multiplicity.TO_MANY
        return PropertyModel(
            name=prop.name,
            cardinality=prop.cardinality,
            value_type=prop.value_type,
            resource_uri=prop.uri,
            nullable=True if nullable is None else nullable,
            unique=bool(property_config.unique),
            readable=_default(property_config.readable, True),
            writable=_default(property_config.writable, True),
            embedded=embedded,
            mapped_by=mapped_by,
            inversed_by=inversed_by,
            groups=property_config.groups or frozenset(),
            security=property_config.security,
            custom=prop.custom,
            comment=prop.resource.comment if prop.resource else None,
            singular_name=self.inflector.singularize(prop.name) if is_array else None,
            rendering_hints=property_config.rendering_hints,
            owner=plan.name,
        )

    def _is_embeddable(self, class_name: str) -> bool:
        type_config = self._types.get(class_name)
        return bool(type_config and type_config.embeddable)

    def _embedded(self, prop: PropertyPlan) -> bool:
        if prop.config.embedded is not None:
            return prop.config.embedded and prop.value_type.is_reference
        return prop.value_type.is_reference and self._is_embeddable(
            prop.value_type.class_name
        )

    def _counterpart(
        self, plan: TypePlan, prop: PropertyPlan, plans: Dict[str, TypePlan]
    ) -> Tuple[Optional[TypePlan], Optional[PropertyPlan]]:
        """
        The referenced type and its first property referencing this type back, if any.
        """
        target = plans.get(prop.value_type.class_name)
        if target is None:
            return None, None
        counterpart = next(
            (
                p
                for p in target.properties
                if p.value_type.class_name == plan.name
                and not (target.name == plan.name and p.name == prop.name)
            ),
            None,
        )
        return target, counterpart

    def _relation_sides(
        self, plan: TypePlan, prop: PropertyPlan, plans: Dict[str, TypePlan]
    ) -> Tuple[Optional[str], Optional[str]]:
        """
        Find the property of the referenced class looping back to this type and decide which side
        owns the relation.

        A to-many side is the inverse one (mapped_by) unless the counterpart declares itself
        inverse. When both sides are to-many and unconfigured, the side whose (class, property)
        sorts first owns the relation so that exactly one side is the owner. A to-one side owns the
        relation (inversed_by) when its to-many counterpart is mapped by it, and is left unset
        otherwise.

        :return: The (mapped_by, inversed_by) pair, at most one of them set.
        """
        target, counterpart = self._counterpart(plan, prop, plans)
        if counterpart is None:
            return None, None
        if prop.cardinality.multiplicity != Multiplicity.TO_MANY:
            return None, (
                counterpart.name
                if self._mapped_by_of(target, counterpart, plans) == prop.name
                else None
            )
        if counterpart.config.mapped_by == prop.name:
            return None, counterpart.name
        if counterpart.config.inversed_by == prop.name:
            return counterpart.name, None
        if counterpart.cardinality.multiplicity == Multiplicity.TO_MANY and (
            plan.name,
            prop.name,
        ) < (target.name, counterpart.name):
            return None, counterpart.name
        logger.debug(
            f"[model_builder] {plan.name}.{prop.name} is the inverse side of {target.name}.{counterpart.name}"
        )
        return counterpart.name, None

    def _mapped_by_of(
        self, plan: TypePlan, prop: PropertyPlan, plans: Dict[str, TypePlan]
    ) -> Optional[str]:
        """The mapped_by a to-many reference ends up with, configured or resolved."""
        if (
            prop.cardinality.multiplicity != Multiplicity.TO_MANY
            or not prop.value_type.is_reference
            or self._embedded(prop)
        ):
            return None
        if prop.config.mapped_by is not None or prop.config.inversed_by is not None:
            return prop.config.mapped_by
        return self._relation_sides(plan, prop, plans)[0]

    def _identifier(self, plan: TypePlan) -> Optional[PropertyModel]:
        id_config: IdConfig = self._configuration.id
        if (
            not id_config.generate
            or plan.parent is not None
            or plan.config.embeddable
            or plan.get_property("id") is not None
        ):
            return None
        return PropertyModel(
            name="id",
            cardinality=Cardinality.SCALAR,
            value_type=ValueType.of_primitive(ID_VALUE_TYPES[id_config.strategy]),
            nullable=False,
            unique=True,
            writable=id_config.writable or id_config.strategy == "none",
            is_id=True,
            rendering_hints={"generation_strategy": id_config.strategy},
            owner=plan.name,
        )

    def _render(self, model: ClassModel):
        if self.sink is None:
            return
        try:
            self.sink.render(model)
        except Exception as exc:
            self.report.fail(RenderFailure(model.name, exc))
            return
        self.report.rendered.append(model.name)


def _default(value: Optional[bool], default: bool) -> bool:
    return default if value is None else value
