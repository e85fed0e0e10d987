"""
Loading of vocabulary and auxiliary ontology documents with rdflib, and extraction of the
immutable :class:`VocabularyGraph` the model builder works on.
"""

from __future__ import annotations

import rdflib
from rdflib import OWL, RDF, RDFS
from rdflib.collection import Collection
from typing_extensions import Any, Iterable, List, Optional, Sequence, Tuple

from .graph import ResourceKind, VocabularyGraph, VocabularyResource
from .. import logger
from ..exceptions import GraphLoadFailure
from ..utils import first_literal, unique_in_order

SCHEMA = rdflib.Namespace("https://schema.org/")
SCHEMA_HTTP = rdflib.Namespace("http://schema.org/")

CLASS_TYPES = (RDFS.Class, OWL.Class)
PROPERTY_TYPES = (RDF.Property, OWL.ObjectProperty, OWL.DatatypeProperty)


def load_graph(sources: Iterable[Tuple[str, Optional[str]]]) -> rdflib.Graph:
    """
    Parse one or more RDF documents into a single rdflib graph.

    :param sources: Pairs of (path or URL, rdflib format name or None to guess it).
    :return: The merged graph.
    :raises GraphLoadFailure: When a source is unreachable or malformed.
    """
    graph = rdflib.Graph()
    for uri, rdf_format in sources:
        try:
            graph.parse(uri, format=rdf_format)
        except Exception as exc:
            raise GraphLoadFailure(uri, exc) from exc
        logger.info(f"[loader] Loaded {uri}, graph now has {len(graph)} triples")
    return graph


class MetadataExtractor:
    """Helper for extracting metadata (labels, comments) from an RDF graph."""

    def __init__(self, graph: rdflib.Graph):
        """
        Initialize the metadata extractor.
        :param graph: The rdflib graph to extract metadata from.
        """
        self.graph = graph

    def get_label(self, uri: Any) -> Optional[str]:
        """Get rdfs:label for a URI"""
        return first_literal(self.graph, uri, RDFS.label)

    def get_comment(self, uri: Any) -> Optional[str]:
        """Get rdfs:comment for a URI"""
        return first_literal(self.graph, uri, RDFS.comment)

    def get_superseded_by(self, uri: Any) -> Optional[str]:
        """Get schema:supersededBy for a URI"""
        for predicate in (SCHEMA.supersededBy, SCHEMA_HTTP.supersededBy):
            for superseding in sorted(self.graph.objects(uri, predicate)):
                if isinstance(superseding, rdflib.URIRef):
                    return str(superseding)
        return None


class ResourceExtractor:
    """Extractor for vocabulary classes and properties of an RDF graph."""

    def __init__(self, graph: rdflib.Graph, metadata_extractor: MetadataExtractor):
        """
        Initialize the resource extractor.
        :param graph: The rdflib graph.
        :param metadata_extractor: Extractor for labels and comments.
        """
        self.graph = graph
        self.metadata_extractor = metadata_extractor

    def extract_class(self, class_uri: rdflib.URIRef) -> VocabularyResource:
        """Extract information about a class"""
        return VocabularyResource(
            uri=str(class_uri),
            kind=ResourceKind.CLASS,
            supertypes=self._uris_of(class_uri, (RDFS.subClassOf,)),
            label=self.metadata_extractor.get_label(class_uri),
            comment=self.metadata_extractor.get_comment(class_uri),
            superseded_by=self.metadata_extractor.get_superseded_by(class_uri),
        )

    def extract_property(self, property_uri: rdflib.URIRef) -> VocabularyResource:
        """Extract information about a property"""
        return VocabularyResource(
            uri=str(property_uri),
            kind=ResourceKind.PROPERTY,
            supertypes=self._uris_of(property_uri, (RDFS.subPropertyOf,)),
            label=self.metadata_extractor.get_label(property_uri),
            comment=self.metadata_extractor.get_comment(property_uri),
            domains=self._uris_of(
                property_uri,
                (RDFS.domain, SCHEMA.domainIncludes, SCHEMA_HTTP.domainIncludes),
            ),
            ranges=self._uris_of(
                property_uri,
                (RDFS.range, SCHEMA.rangeIncludes, SCHEMA_HTTP.rangeIncludes),
            ),
            superseded_by=self.metadata_extractor.get_superseded_by(property_uri),
        )

    def _uris_of(self, subject: Any, predicates: Sequence[Any]) -> Tuple[str, ...]:
        """
        Collect the URI objects of the given predicates, expanding owl:unionOf blank nodes.
        The result is sorted since rdflib graphs do not keep declaration order.
        """
        uris: List[str] = []
        for predicate in predicates:
            for obj in self.graph.objects(subject, predicate):
                if isinstance(obj, rdflib.URIRef):
                    uris.append(str(obj))
                elif isinstance(obj, rdflib.BNode):
                    for union in self.graph.objects(obj, OWL.unionOf):
                        uris.extend(
                            str(member)
                            for member in Collection(self.graph, union)
                            if isinstance(member, rdflib.URIRef)
                        )
        return tuple(sorted(unique_in_order(uris)))


def extract_vocabulary(*graphs: rdflib.Graph) -> VocabularyGraph:
    """
    Build the immutable vocabulary graph from parsed RDF graphs.

    :param graphs: The parsed vocabulary documents.
    :return: The vocabulary graph, classes and properties ordered by URI.
    """
    merged = rdflib.Graph()
    for graph in graphs:
        merged += graph
    extractor = ResourceExtractor(merged, MetadataExtractor(merged))

    class_uris = {
        s
        for class_type in CLASS_TYPES
        for s in merged.subjects(RDF.type, class_type)
        if isinstance(s, rdflib.URIRef)
    }
    property_uris = {
        s
        for property_type in PROPERTY_TYPES
        for s in merged.subjects(RDF.type, property_type)
        if isinstance(s, rdflib.URIRef)
    }

    resources = [extractor.extract_class(uri) for uri in sorted(class_uris)]
    resources.extend(
        extractor.extract_property(uri)
        for uri in sorted(property_uris)
        if uri not in class_uris
    )
    logger.debug(
        f"[loader] Extracted {len(class_uris)} classes and {len(property_uris)} properties"
    )
    return VocabularyGraph.of(resources)


def load_vocabulary(sources: Iterable[Tuple[str, Optional[str]]]) -> VocabularyGraph:
    """
    Load and extract vocabulary documents.

    :param sources: Pairs of (path or URL, rdflib format name or None).
    :return: The vocabulary graph.
    :raises GraphLoadFailure: When a source is unreachable or malformed.
    """
    return extract_vocabulary(load_graph(sources))
