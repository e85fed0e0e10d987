from __future__ import annotations

import re
from dataclasses import dataclass, field

import rdflib
from rdflib import OWL, RDF, RDFS
from typing_extensions import Any, Dict, Iterable, Optional, Set, Tuple

from .ontology_bridge import OntologyBridge
from .. import logger
from ..model import Cardinality, Multiplicity

MAX_ONE_PREDICATES = (
    OWL.maxCardinality,
    OWL.cardinality,
    OWL.maxQualifiedCardinality,
    OWL.qualifiedCardinality,
)
"""
Restriction predicates that limit a property to at most one value when their value is 1.
"""

BOUNDS_NOTATION = re.compile(r"\(\s*[01*]\s*\.\.\.?\s*[01*]\s*\)")


@dataclass
class CardinalityResolver:
    """
    Determines the cardinality of vocabulary properties by looking at the restrictions the auxiliary
    ontology declares on their counterpart.

    When the vocabulary property has no counterpart the resolver falls back to a permissive default:
    a datatype range is scalar, a class range is many-to-many. Preferring the richer relation over a
    restrictive scalar is intentional, a to-many relation can always hold a single value.
    """

    bridge: OntologyBridge
    auxiliary_graph: rdflib.Graph = field(default_factory=rdflib.Graph)
    _cache: Dict[Tuple[str, bool], Cardinality] = field(
        default_factory=dict, init=False, repr=False
    )

    def resolve(self, property_uri: str, range_is_datatype: bool = False) -> Cardinality:
        """
        Resolve the cardinality of a vocabulary property.

        :param property_uri: URI of the vocabulary property.
        :param range_is_datatype: Whether the property ranges over a primitive datatype.
        :return: The cardinality from the perspective of the property's owner.
        """
        key = (property_uri, range_is_datatype)
        if key not in self._cache:
            self._cache[key] = self._resolve(property_uri, range_is_datatype)
        return self._cache[key]

    def _resolve(self, property_uri: str, range_is_datatype: bool) -> Cardinality:
        auxiliary_uri = self.bridge.lookup(property_uri)
        relation = None
        if auxiliary_uri is not None:
            relation = self.auxiliary_cardinality(auxiliary_uri)
        if relation is None:
            default = self.default(range_is_datatype)
            logger.debug(
                f"[cardinality_resolver] No auxiliary cardinality for {property_uri}, "
                f"defaulting to {default.value}"
            )
            return default
        logger.debug(
            f"[cardinality_resolver] {property_uri} is {relation.value} according to {auxiliary_uri}"
        )
        if range_is_datatype:
            if relation.multiplicity == Multiplicity.TO_ONE:
                return Cardinality.SCALAR
            return Cardinality.ONE_TO_MANY
        return relation

    @staticmethod
    def default(range_is_datatype: bool) -> Cardinality:
        return Cardinality.SCALAR if range_is_datatype else Cardinality.MANY_TO_MANY

    def auxiliary_cardinality(self, auxiliary_uri: str) -> Optional[Cardinality]:
        """
        Classify an auxiliary ontology property by its restrictions.

        :param auxiliary_uri: URI of the auxiliary property.
        :return: The relation cardinality, or None when the auxiliary graph does not know the property.
        """
        node = rdflib.URIRef(auxiliary_uri)
        if not self._is_known(node):
            return None

        domain_side = self._is_max_one(node) or (node, RDF.type, OWL.FunctionalProperty) in self.auxiliary_graph
        range_side = (node, RDF.type, OWL.InverseFunctionalProperty) in self.auxiliary_graph or any(
            self._is_max_one(inverse)
            or (inverse, RDF.type, OWL.FunctionalProperty) in self.auxiliary_graph
            for inverse in self._inverses_of(node)
        )

        if not domain_side and not range_side:
            from_label = self._cardinality_from_label(node)
            if from_label is not None:
                return from_label

        if domain_side and range_side:
            return Cardinality.ONE_TO_ONE
        if domain_side:
            return Cardinality.MANY_TO_ONE
        if range_side:
            return Cardinality.ONE_TO_MANY
        return Cardinality.MANY_TO_MANY

    def _is_known(self, node: rdflib.URIRef) -> bool:
        return (node, None, None) in self.auxiliary_graph or (
            None,
            OWL.onProperty,
            node,
        ) in self.auxiliary_graph

    def _is_max_one(self, property_node: Any) -> bool:
        """Check whether a restriction limits the property to at most one value per subject."""
        for restriction in self.auxiliary_graph.subjects(OWL.onProperty, property_node):
            for predicate in MAX_ONE_PREDICATES:
                for value in self.auxiliary_graph.objects(restriction, predicate):
                    if _as_int(value) == 1:
                        return True
        return False

    def _inverses_of(self, node: rdflib.URIRef) -> Iterable[Any]:
        inverses: Set[Any] = set(self.auxiliary_graph.subjects(OWL.inverseOf, node))
        inverses.update(self.auxiliary_graph.objects(node, OWL.inverseOf))
        return inverses

    def _cardinality_from_label(self, node: rdflib.URIRef) -> Optional[Cardinality]:
        """GoodRelations labels carry the cardinality in a bounds notation, e.g. 'hasBrand (0..*)'."""
        for label in sorted(str(l) for l in self.auxiliary_graph.objects(node, RDFS.label)):
            match = BOUNDS_NOTATION.search(label)
            if match:
                try:
                    return Cardinality.parse(match.group(0).replace("...", ".."))
                except ValueError:
                    logger.debug(
                        f"[cardinality_resolver] Unsupported bounds {match.group(0)} on {node}"
                    )
        return None


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value.toPython() if isinstance(value, rdflib.Literal) else value)
    except (TypeError, ValueError):
        return None
