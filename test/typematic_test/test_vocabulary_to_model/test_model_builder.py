import pytest

from typematic.configuration import Configuration
from typematic.exceptions import (
    AmbiguousRange,
    ConfigurationConflict,
    InheritanceCollision,
    RenderFailure,
    TypeBuildFailure,
    UnresolvableReference,
)
from typematic.model import Cardinality, CollectingSink, Primitive, ValueKind
from typematic.vocabulary import ResourceKind, VocabularyGraph, VocabularyResource
from typematic.vocabulary_to_model import CardinalityResolver, ModelBuilder, OntologyBridge

SCHEMA = "http://schema.org/"
EX = "http://example.org/"


def build(builder, vocabulary, data):
    models = builder.build(vocabulary, Configuration.from_dict(data))
    return {model.name: model for model in models}


def example_vocabulary(*resources) -> VocabularyGraph:
    return VocabularyGraph.of(resources)


def example_class(name, *supertypes) -> VocabularyResource:
    return VocabularyResource(EX + name, ResourceKind.CLASS, supertypes=tuple(EX + s for s in supertypes))


def example_property(name, domain, *ranges, uri=None) -> VocabularyResource:
    return VocabularyResource(
        uri or EX + name,
        ResourceKind.PROPERTY,
        domains=(EX + domain,),
        ranges=tuple(r if ":" in r else EX + r for r in ranges),
    )


def test_end_to_end(builder, vocabulary, e2e_configuration, sink):
    models = builder.build(vocabulary, e2e_configuration)
    assert [m.name for m in models] == ["Thing", "Person", "PostalAddress"]
    assert [m.name for m in sink.models] == ["Thing", "Person", "PostalAddress"]
    thing, person, postal_address = models

    assert person.parent == "Thing"
    assert person.resource_uri == SCHEMA + "Person"
    assert person.security == "is_granted('ROLE_USER')"
    assert person.operations["collection"]["get"]["route_name"] == "get_person_collection"
    assert person.property_names == (
        "additionalName",
        "address",
        "birthDate",
        "email",
        "familyName",
        "gender",
        "givenName",
        "knows",
        "telephone",
        "worksFor",
        "url",
        "customColumn",
    )

    family_name = person.get_property("familyName")
    assert family_name.cardinality == Cardinality.SCALAR
    assert family_name.value_type.primitive == Primitive.TEXT
    assert family_name.nullable

    address = person.get_property("address")
    assert address.cardinality == Cardinality.MANY_TO_ONE
    assert address.value_type.kind == ValueKind.REFERENCE
    assert address.value_type.class_name == "PostalAddress"
    assert not address.embedded

    email = person.get_property("email")
    assert email.unique
    assert email.security == "is_granted('ROLE_ADMIN')"
    assert email.cardinality == Cardinality.SCALAR

    assert person.get_property("birthDate").value_type.primitive == Primitive.DATE
    assert person.get_property("additionalName").groups == frozenset({"extra"})
    assert person.get_property("url").resource_uri == SCHEMA + "url"
    assert not person.get_property("url").custom

    custom_column = person.get_property("customColumn")
    assert custom_column.custom
    assert custom_column.value_type.is_untyped
    assert custom_column.rendering_hints["orm_column"]["scale"] == 1

    assert thing.parent is None
    assert thing.property_names == ("name", "url")
    assert thing.identifier.is_id
    assert thing.identifier.value_type.primitive == Primitive.INTEGER
    assert person.identifier is None

    assert postal_address.parent == "Thing"
    assert postal_address.property_names[:6] == (
        "addressCountry",
        "addressLocality",
        "addressRegion",
        "postOfficeBoxNumber",
        "postalCode",
        "streetAddress",
    )
    assert set(postal_address.property_names[6:]) == {"contactType", "email", "telephone"}

    report = builder.report
    assert report.succeeded
    assert report.built == report.rendered == ["Thing", "Person", "PostalAddress"]
    [unresolved] = report.warnings_of_type(UnresolvableReference)
    assert (unresolved.type_name, unresolved.property_name) == ("Person", "worksFor")
    assert person.get_property("worksFor").value_type.is_untyped


def test_build_is_deterministic(builder, vocabulary, e2e_configuration):
    first = builder.build(vocabulary, e2e_configuration)
    first_warnings = [str(w) for w in builder.report.warnings]
    second = builder.build(vocabulary, e2e_configuration)
    assert first == second
    assert first_warnings == [str(w) for w in builder.report.warnings]


def test_empty_property_override_is_idempotent(builder, vocabulary):
    omitted = build(builder, vocabulary, {"types": {"Person": None}})
    empty = build(builder, vocabulary, {"types": {"Person": {"properties": {"familyName": None}}}})
    assert omitted["Person"].get_property("familyName") == empty["Person"].get_property("familyName")
    assert omitted["Person"].property_names == empty["Person"].property_names


def test_child_override_of_a_parent_property(builder, vocabulary):
    models = build(
        builder,
        vocabulary,
        {"types": {"Thing": None, "Person": {"properties": {"name": {"nullable": False}}}}},
    )
    assert models["Person"].parent == "Thing"
    assert models["Person"].get_property("name").nullable is False
    assert models["Thing"].get_property("name").nullable is True
    assert models["Person"].get_property("url") is None


def test_self_reference():
    vocabulary = example_vocabulary(example_class("Node"), example_property("next", "Node", "Node"))
    builder = ModelBuilder()
    models = build(builder, vocabulary, {"vocabularyNamespace": EX, "types": {"Node": None}})
    [next_node] = models["Node"].properties
    assert next_node.value_type.class_name == "Node"
    assert next_node.cardinality == Cardinality.MANY_TO_MANY
    assert next_node.mapped_by is None and next_node.inversed_by is None
    assert models["Node"].references() == ()


def test_both_relation_sides_skip_only_that_type(builder, vocabulary):
    models = build(
        builder,
        vocabulary,
        {
            "types": {
                "Person": {"properties": {"knows": {"mappedBy": "a", "inversedBy": "b"}}},
                "PostalAddress": None,
            }
        },
    )
    assert list(models) == ["PostalAddress"]
    [conflict] = builder.report.failures
    assert isinstance(conflict, ConfigurationConflict)
    assert (conflict.type_name, conflict.property_name) == ("Person", "knows")
    assert not builder.report.succeeded


def tagged_configuration(name="tags", cardinality="one-to-many"):
    return {
        "types": {
            "A": {"custom": True, "properties": {name: {"range": "Text", "cardinality": cardinality}}},
            "B": {"custom": True},
        }
    }


class BrokenInflector:
    def singularize(self, plural_noun):
        raise TypeError(f"cannot inflect {plural_noun}")


class BrokenResolver(CardinalityResolver):
    def default(self, range_is_datatype):
        raise RuntimeError("no default")


@pytest.mark.parametrize(
    "builder_kwargs, cardinality, cause",
    [
        ({"inflector": BrokenInflector()}, "one-to-many", TypeError),
        ({"cardinality_resolver": BrokenResolver(OntologyBridge.empty())}, None, RuntimeError),
    ],
)
def test_unexpected_error_skips_only_that_type(sink, builder_kwargs, cardinality, cause):
    builder = ModelBuilder(sink=sink, **builder_kwargs)
    models = build(builder, VocabularyGraph.of([]), tagged_configuration(cardinality=cardinality))
    assert list(models) == ["B"]
    assert [m.name for m in sink.models] == ["B"]
    [failure] = builder.report.failures
    assert isinstance(failure, TypeBuildFailure)
    assert failure.type_name == "A"
    assert isinstance(failure.cause, cause)


def test_array_name_with_a_trailing_underscore():
    builder = ModelBuilder()
    models = build(builder, VocabularyGraph.of([]), tagged_configuration("tags_"))
    assert list(models) == ["A", "B"]
    assert models["A"].get_property("tags_").singular_name == "tag_"
    assert builder.report.succeeded


@pytest.mark.parametrize(
    "thing_config",
    [
        {"properties": {"name": {"embedded": True}}},
        {"properties": {"name": {"cardinality": "lots"}}},
    ],
)
@pytest.mark.parametrize("child_first", [False, True])
def test_children_of_a_failed_parent_fail(builder, vocabulary, sink, thing_config, child_first):
    types = {"Thing": thing_config, "Person": None}
    if child_first:
        types = {"Person": None, "Thing": thing_config}
    models = build(builder, vocabulary, {"types": dict(types, Organization={"parent": False})})
    assert list(models) == ["Organization"]
    assert [m.name for m in sink.models] == ["Organization"]
    failures = builder.report.failures_of_type(ConfigurationConflict)
    assert {f.type_name for f in failures} == {"Thing", "Person"}
    [person_failure] = [f for f in failures if f.type_name == "Person"]
    assert "parent Thing" in str(person_failure)


def test_child_declared_before_its_parent(builder, vocabulary, sink):
    models = build(builder, vocabulary, {"types": {"Person": None, "Thing": None}})
    assert list(models) == ["Person", "Thing"]
    assert [m.name for m in sink.models] == ["Person", "Thing"]
    assert models["Person"].parent == "Thing"
    assert "name" not in models["Person"].property_names
    assert builder.report.succeeded


def test_class_range_wins_over_text(builder, vocabulary):
    models = build(builder, vocabulary, {"types": {"Person": None, "PostalAddress": None}})
    address = models["Person"].get_property("address")
    assert address.value_type.class_name == "PostalAddress"
    [ambiguity] = builder.report.warnings_of_type(AmbiguousRange)
    assert ambiguity.property_uri == SCHEMA + "address"
    assert ambiguity.candidates == (SCHEMA + "PostalAddress", SCHEMA + "Text")


def test_one_to_many_side_is_mapped_by_its_to_one_counterpart(builder, vocabulary):
    models = build(
        builder,
        vocabulary,
        {"types": {"Person": None, "Organization": {"properties": {"employees": None}}}},
    )
    organization = models["Organization"]
    employee = organization.get_property("employee")
    assert employee.cardinality == Cardinality.ONE_TO_MANY
    assert employee.mapped_by == "worksFor"
    assert employee.inversed_by is None
    assert employee.singular_name == "employee"

    works_for = models["Person"].get_property("worksFor")
    assert works_for.cardinality == Cardinality.MANY_TO_ONE
    assert works_for.value_type.class_name == "Organization"
    assert works_for.mapped_by is None
    assert works_for.inversed_by == "employee"

    # explicitly configured even though superseded
    assert "employees" in organization.property_names


def test_superseded_properties_are_skipped(builder, vocabulary):
    models = build(builder, vocabulary, {"types": {"Organization": None}})
    assert "employees" not in models["Organization"].property_names
    assert "employee" in models["Organization"].property_names


def many_to_many_configuration(b_items=None):
    return {
        "types": {
            "A": {"custom": True, "properties": {"bs": {"range": "B", "cardinality": "many-to-many"}}},
            "B": {
                "custom": True,
                "properties": {"items": dict({"range": "A", "cardinality": "many-to-many"}, **(b_items or {}))},
            },
        }
    }


def test_many_to_many_tie_break():
    builder = ModelBuilder()
    models = build(builder, VocabularyGraph.of([]), many_to_many_configuration())
    bs = models["A"].get_property("bs")
    items = models["B"].get_property("items")
    assert (bs.mapped_by, bs.inversed_by) == (None, "items")
    assert (items.mapped_by, items.inversed_by) == ("bs", None)
    assert models["A"].is_custom and bs.custom


def test_configured_inverse_side_makes_the_other_side_owning():
    builder = ModelBuilder()
    models = build(builder, VocabularyGraph.of([]), many_to_many_configuration({"mappedBy": "bs"}))
    assert models["A"].get_property("bs").inversed_by == "items"
    assert models["B"].get_property("items").mapped_by == "bs"


def test_embeddable_range(builder, vocabulary):
    models = build(
        builder,
        vocabulary,
        {"types": {"Person": None, "PostalAddress": {"embeddable": True}}},
    )
    address = models["Person"].get_property("address")
    assert address.embedded
    assert not address.is_relation
    assert models["PostalAddress"].embeddable
    assert models["PostalAddress"].identifier is None


def test_embedding_a_primitive_conflicts(builder, vocabulary):
    models = build(
        builder,
        vocabulary,
        {"types": {"Person": {"properties": {"familyName": {"embedded": True}}}}},
    )
    assert models == {}
    assert builder.report.failures_of_type(ConfigurationConflict)


def test_parent_override(builder, vocabulary):
    models = build(
        builder,
        vocabulary,
        {"types": {"Thing": None, "Person": {"parent": False}}},
    )
    person = models["Person"]
    assert person.parent is None
    assert person.identifier is not None
    assert {"name", "url"} <= set(person.property_names)


def test_parent_must_be_generated(builder, vocabulary):
    models = build(builder, vocabulary, {"types": {"Person": {"parent": "Organization"}, "Thing": None}})
    assert list(models) == ["Thing"]
    [conflict] = builder.report.failures
    assert conflict.type_name == "Person"


def test_parent_cycle_skips_both_types():
    builder = ModelBuilder()
    models = build(
        builder,
        VocabularyGraph.of([]),
        {"types": {"A": {"custom": True, "parent": "B"}, "B": {"custom": True, "parent": "A"}, "C": {"custom": True}}},
    )
    assert list(models) == ["C"]
    assert len(builder.report.failures) == 2


def test_type_missing_from_the_vocabulary_is_custom(builder, vocabulary):
    models = build(
        builder,
        vocabulary,
        {"types": {"Widget": {"properties": {"label": {"range": "Text", "required": True}}}}},
    )
    widget = models["Widget"]
    assert widget.is_custom
    label = widget.get_property("label")
    assert label.custom
    assert label.value_type.primitive == Primitive.TEXT
    assert label.cardinality == Cardinality.SCALAR
    assert label.nullable is False


@pytest.mark.parametrize(
    "property_config",
    [{"required": True, "nullable": True}, {"cardinality": "lots"}],
)
def test_invalid_property_configuration_conflicts(builder, vocabulary, property_config):
    models = build(
        builder,
        vocabulary,
        {"types": {"Person": {"properties": {"familyName": property_config}}, "Thing": None}},
    )
    assert list(models) == ["Thing"]
    assert len(builder.report.failures_of_type(ConfigurationConflict)) == 1


def test_cardinality_hint_overrides_the_auxiliary_ontology(builder, vocabulary):
    models = build(
        builder,
        vocabulary,
        {
            "types": {
                "Person": {
                    "properties": {
                        "address": {"cardinality": "(*..*)"},
                        "telephone": {"cardinality": "one-to-many"},
                        "email": {"cardinality": "many-to-one"},
                    }
                },
                "PostalAddress": None,
            }
        },
    )
    person = models["Person"]
    assert person.get_property("address").cardinality == Cardinality.MANY_TO_MANY
    assert person.get_property("telephone").is_array
    assert person.get_property("email").cardinality == Cardinality.SCALAR


def test_property_filters(builder, vocabulary):
    models = build(
        builder,
        vocabulary,
        {
            "types": {
                "Person": {"properties": {"gender": {"exclude": True}}},
                "Organization": {"allProperties": False, "properties": {"legalName": None}},
            }
        },
    )
    assert "gender" not in models["Person"].property_names
    assert models["Organization"].property_names == ("legalName",)


def test_unresolvable_configured_range(builder, vocabulary):
    models = build(
        builder,
        vocabulary,
        {"types": {"Person": {"properties": {"knows": {"range": "Organization"}}}}},
    )
    assert models["Person"].get_property("knows").value_type.is_untyped
    assert any(w.property_name == "knows" for w in builder.report.warnings_of_type(UnresolvableReference))


def test_inheritance_collision():
    vocabulary = example_vocabulary(
        example_class("Base"),
        example_class("Child", "Base"),
        example_property("label", "Child", SCHEMA + "Text", uri=EX + "v2/label"),
        example_property("label", "Base", SCHEMA + "Text", uri=EX + "v1/label"),
    )
    builder = ModelBuilder()
    models = build(builder, vocabulary, {"vocabularyNamespace": EX, "types": {"Child": None}})
    [label] = models["Child"].properties
    assert label.resource_uri == EX + "v2/label"
    [collision] = builder.report.warnings_of_type(InheritanceCollision)
    assert (collision.kept_from, collision.ignored_from) == ("Child", "Base")


def test_identifier_configuration(builder, vocabulary):
    models = build(
        builder,
        vocabulary,
        {
            "id": {"strategy": "uuid"},
            "types": {"Thing": None, "Widget": {"properties": {"id": {"range": "Text"}}}},
        },
    )
    assert models["Thing"].identifier.value_type.primitive == Primitive.TEXT
    assert models["Thing"].identifier.rendering_hints["generation_strategy"] == "uuid"
    assert models["Widget"].identifier is None

    models = build(builder, vocabulary, {"id": {"generate": False}, "types": {"Thing": None}})
    assert models["Thing"].identifier is None


def test_range_mapping(builder, vocabulary):
    models = build(
        builder,
        vocabulary,
        {"rangeMapping": {"https://schema.org/Date": "text"}, "types": {"Person": None}},
    )
    assert models["Person"].get_property("birthDate").value_type.primitive == Primitive.TEXT


class FailingSink(CollectingSink):
    def render(self, class_model):
        if class_model.name == "Person":
            raise IOError("disk full")
        super().render(class_model)


def test_render_failure_does_not_stop_the_run(resolver, vocabulary, e2e_configuration):
    sink = FailingSink()
    builder = ModelBuilder(cardinality_resolver=resolver, sink=sink)
    models = builder.build(vocabulary, e2e_configuration)
    assert len(models) == 3
    assert [m.name for m in sink.models] == ["Thing", "PostalAddress"]
    [failure] = builder.report.failures
    assert isinstance(failure, RenderFailure)
    assert failure.class_name == "Person"
    assert builder.report.rendered == ["Thing", "PostalAddress"]
