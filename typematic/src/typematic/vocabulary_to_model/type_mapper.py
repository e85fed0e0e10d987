from __future__ import annotations

from dataclasses import dataclass, field

from rdflib.namespace import XSD
from typing_extensions import ClassVar, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .. import logger
from ..exceptions import AmbiguousRange
from ..model import Primitive, ValueType
from ..report import GenerationReport
from ..utils import NamingRegistry

SCHEMA_DATATYPES = "http://schema.org/"


@dataclass
class TypeMapper:
    """
    Maps the declared ranges of a property to a value type: a primitive, an enumeration,
    a reference to a generated class, or untyped.

    The mapper never fails. Unknown ranges degrade to untyped and several candidate ranges are
    resolved with a fixed precedence: a generated class beats a primitive, the lexicographically
    first class URI beats the other classes, and text beats the other primitives.
    """

    generated_classes: Mapping[str, str] = field(default_factory=dict)
    """
    URI to name of every class being generated.
    """
    enumerations: Set[str] = field(default_factory=set)
    """
    URIs of the generated classes that are enumerations.
    """
    range_mapping: Mapping[str, Primitive] = field(default_factory=dict)
    """
    User overrides of the datatype table, URI to primitive.
    """
    report: Optional[GenerationReport] = None

    DATATYPES: ClassVar[Dict[str, Primitive]] = {
        SCHEMA_DATATYPES + "Text": Primitive.TEXT,
        SCHEMA_DATATYPES + "CssSelectorType": Primitive.TEXT,
        SCHEMA_DATATYPES + "XPathType": Primitive.TEXT,
        SCHEMA_DATATYPES + "PronounceableText": Primitive.TEXT,
        SCHEMA_DATATYPES + "URL": Primitive.URL,
        SCHEMA_DATATYPES + "Boolean": Primitive.BOOLEAN,
        SCHEMA_DATATYPES + "Integer": Primitive.INTEGER,
        SCHEMA_DATATYPES + "Number": Primitive.FLOAT,
        SCHEMA_DATATYPES + "Float": Primitive.FLOAT,
        SCHEMA_DATATYPES + "Date": Primitive.DATE,
        SCHEMA_DATATYPES + "DateTime": Primitive.DATE_TIME,
        SCHEMA_DATATYPES + "Time": Primitive.TIME,
        str(XSD.string): Primitive.TEXT,
        str(XSD.normalizedString): Primitive.TEXT,
        str(XSD.token): Primitive.TEXT,
        str(XSD.language): Primitive.TEXT,
        str(XSD.boolean): Primitive.BOOLEAN,
        str(XSD.decimal): Primitive.FLOAT,
        str(XSD.float): Primitive.FLOAT,
        str(XSD.double): Primitive.FLOAT,
        str(XSD.integer): Primitive.INTEGER,
        str(XSD.nonPositiveInteger): Primitive.INTEGER,
        str(XSD.negativeInteger): Primitive.INTEGER,
        str(XSD.long): Primitive.INTEGER,
        str(XSD.int): Primitive.INTEGER,
        str(XSD.short): Primitive.INTEGER,
        str(XSD.byte): Primitive.INTEGER,
        str(XSD.nonNegativeInteger): Primitive.INTEGER,
        str(XSD.unsignedLong): Primitive.INTEGER,
        str(XSD.unsignedInt): Primitive.INTEGER,
        str(XSD.unsignedShort): Primitive.INTEGER,
        str(XSD.unsignedByte): Primitive.INTEGER,
        str(XSD.positiveInteger): Primitive.INTEGER,
        str(XSD.date): Primitive.DATE,
        str(XSD.dateTime): Primitive.DATE_TIME,
        str(XSD.time): Primitive.TIME,
        str(XSD.anyURI): Primitive.URL,
    }

    def __post_init__(self):
        self._classes = {
            NamingRegistry.normalize_uri(uri): name
            for uri, name in self.generated_classes.items()
        }
        self._enumerations = {NamingRegistry.normalize_uri(uri) for uri in self.enumerations}
        self._datatypes = {
            NamingRegistry.normalize_uri(uri): primitive
            for uri, primitive in {**self.DATATYPES, **self.range_mapping}.items()
        }

    def primitive_of(self, uri: str) -> Optional[Primitive]:
        return self._datatypes.get(NamingRegistry.normalize_uri(uri))

    def class_name_of(self, uri: str) -> Optional[str]:
        return self._classes.get(NamingRegistry.normalize_uri(uri))

    def is_datatype(self, uri: str) -> bool:
        return self.primitive_of(uri) is not None

    def resolve(
        self,
        range_uris: Iterable[str],
        is_collection: bool = False,
        subject: Optional[str] = None,
    ) -> ValueType:
        """
        Resolve the value type of a property from its candidate ranges.

        :param range_uris: The declared (or configured) range URIs.
        :param is_collection: Whether the property holds many values, only used for reporting.
        :param subject: URI or name of the property, only used for reporting.
        :return: The value type, untyped when nothing can be resolved.
        """
        candidates = sorted(
            set(range_uris), key=lambda uri: (NamingRegistry.normalize_uri(uri), uri)
        )
        if not candidates:
            return ValueType.untyped()

        classes: List[Tuple[str, str]] = []
        primitives: List[Tuple[str, Primitive]] = []
        for uri in candidates:
            primitive = self.primitive_of(uri)
            if primitive is not None:
                primitives.append((uri, primitive))
                continue
            class_name = self.class_name_of(uri)
            if class_name is not None:
                classes.append((uri, class_name))

        if classes:
            uri, class_name = classes[0]
            resolved = self._class_value_type(uri, class_name)
        elif primitives:
            kinds = {primitive for _, primitive in primitives}
            if len(kinds) == 1:
                uri, primitive = primitives[0]
            else:
                uri, primitive = next(
                    ((u, p) for u, p in primitives if p == Primitive.TEXT),
                    (None, Primitive.TEXT),
                )
            resolved = ValueType.of_primitive(primitive, uri)
        else:
            logger.debug(
                f"[type_mapper] No known range among {', '.join(candidates)} for {subject}"
            )
            return ValueType.untyped()

        if len(candidates) > 1 and (classes or len({p for _, p in primitives}) > 1):
            self._report_ambiguity(subject, candidates, resolved, is_collection)
        return resolved

    def _class_value_type(self, uri: str, class_name: str) -> ValueType:
        if NamingRegistry.normalize_uri(uri) in self._enumerations:
            return ValueType.enum(class_name, uri)
        return ValueType.reference(class_name, uri)

    def _report_ambiguity(
        self,
        subject: Optional[str],
        candidates: List[str],
        resolved: ValueType,
        is_collection: bool,
    ):
        warning = AmbiguousRange(subject or "<anonymous>", tuple(candidates), str(resolved))
        logger.debug(
            f"[type_mapper] Ambiguous {'collection' if is_collection else 'single'} "
            f"value of {subject} resolved to {resolved}"
        )
        if self.report is not None:
            self.report.warn(warning)
        else:
            logger.warning(f"[type_mapper] {warning}")
