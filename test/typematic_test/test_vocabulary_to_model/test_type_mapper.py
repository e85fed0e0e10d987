from rdflib.namespace import XSD

from typematic.exceptions import AmbiguousRange
from typematic.model import Primitive, ValueKind, ValueType
from typematic.report import GenerationReport
from typematic.vocabulary_to_model import TypeMapper

SCHEMA = "http://schema.org/"


def make_mapper(report=None, **kwargs) -> TypeMapper:
    return TypeMapper(
        generated_classes={
            SCHEMA + "ClassA": "ClassA",
            SCHEMA + "ClassB": "ClassB",
            SCHEMA + "DayOfWeek": "DayOfWeek",
        },
        enumerations={SCHEMA + "DayOfWeek"},
        report=report,
        **kwargs,
    )


def test_primitive_ranges():
    mapper = make_mapper()
    assert mapper.resolve([SCHEMA + "Text"]) == ValueType.of_primitive(Primitive.TEXT, SCHEMA + "Text")
    assert mapper.resolve(["https://schema.org/Date"]).primitive == Primitive.DATE
    assert mapper.resolve([str(XSD.integer)]).primitive == Primitive.INTEGER
    assert mapper.resolve([SCHEMA + "URL"]).primitive == Primitive.URL


def test_generated_class_and_enumeration():
    mapper = make_mapper()
    reference = mapper.resolve(["https://schema.org/ClassA"])
    assert reference.kind == ValueKind.REFERENCE
    assert reference.class_name == "ClassA"
    assert mapper.resolve([SCHEMA + "DayOfWeek"]).kind == ValueKind.ENUM


def test_unknown_and_empty_ranges_are_untyped():
    mapper = make_mapper()
    assert mapper.resolve([]).is_untyped
    assert mapper.resolve([SCHEMA + "Organization"]).is_untyped


def test_class_wins_over_primitive_with_a_warning():
    report = GenerationReport()
    mapper = make_mapper(report)
    resolved = mapper.resolve([SCHEMA + "Text", SCHEMA + "ClassA"], subject=SCHEMA + "prop")
    assert resolved == ValueType.reference("ClassA", SCHEMA + "ClassA")
    [warning] = report.warnings_of_type(AmbiguousRange)
    assert warning.property_uri == SCHEMA + "prop"
    assert warning.chosen == "reference:ClassA"


def test_first_class_by_uri_wins():
    mapper = make_mapper()
    assert mapper.resolve([SCHEMA + "ClassB", SCHEMA + "ClassA"]).class_name == "ClassA"


def test_http_and_https_variants_resolve_to_the_same_uri():
    mapper = make_mapper()
    variants = ["https://schema.org/ClassA", "http://schema.org/ClassA"]
    assert mapper.resolve(variants).uri == "http://schema.org/ClassA"
    assert mapper.resolve(list(reversed(variants))).uri == "http://schema.org/ClassA"


def test_mixed_primitives_fall_back_to_text():
    report = GenerationReport()
    mapper = make_mapper(report)
    resolved = mapper.resolve([SCHEMA + "Number", SCHEMA + "Text"])
    assert resolved.primitive == Primitive.TEXT
    assert len(report.warnings) == 1


def test_same_primitive_kind_is_not_ambiguous():
    report = GenerationReport()
    mapper = make_mapper(report)
    assert mapper.resolve([SCHEMA + "Text", str(XSD.string)]).primitive == Primitive.TEXT
    assert report.warnings == []


def test_range_mapping_overrides_the_datatype_table():
    mapper = make_mapper(range_mapping={SCHEMA + "Number": Primitive.INTEGER, SCHEMA + "Distance": Primitive.TEXT})
    assert mapper.resolve([SCHEMA + "Number"]).primitive == Primitive.INTEGER
    assert mapper.resolve([SCHEMA + "Distance"]).primitive == Primitive.TEXT


def test_resolution_is_independent_of_range_order():
    mapper = make_mapper()
    ranges = [SCHEMA + "Text", SCHEMA + "ClassB", SCHEMA + "ClassA"]
    assert mapper.resolve(ranges) == mapper.resolve(list(reversed(ranges)))
