"""
End to end generation run: load the documents named in the configuration, build the class models
and feed them to a render sink.
"""

from __future__ import annotations

from dataclasses import replace

import rdflib
from typing_extensions import List, Optional

from . import logger
from .configuration import Configuration, TypeConfig, VocabularySource
from .inflector import InflectInflector, Inflector
from .model import RenderSink
from .report import GenerationReport
from .utils import NamingRegistry
from .vocabulary import VocabularyGraph, extract_vocabulary, load_graph
from .vocabulary_to_model import CardinalityResolver, ModelBuilder, OntologyBridge, TypeMapper

DATATYPE_URI = "http://schema.org/DataType"


def generate(
    configuration: Configuration,
    sink: Optional[RenderSink] = None,
    bridge: Optional[OntologyBridge] = None,
    inflector: Optional[Inflector] = None,
    vocabulary: Optional[VocabularyGraph] = None,
    auxiliary_graph: Optional[rdflib.Graph] = None,
) -> GenerationReport:
    """
    Run a generation.

    Documents are only loaded when the corresponding graph is not passed in. Loading happens before
    any type is processed, so a :class:`GraphLoadFailure` aborts the run without partial output.

    :param configuration: The run configuration.
    :param sink: Receives every built class model.
    :param bridge: Vocabulary to auxiliary ontology table, the bundled schema.org table by default.
    :param inflector: Singularizes array property names.
    :param vocabulary: An already loaded vocabulary graph.
    :param auxiliary_graph: An already loaded auxiliary ontology graph.
    :return: The report of the run.
    """
    if vocabulary is None:
        vocabulary = extract_vocabulary(_load(configuration.vocabularies))
    if auxiliary_graph is None:
        auxiliary_graph = _load(configuration.relations)
    if configuration.all_types:
        configuration = with_vocabulary_types(configuration, vocabulary)

    builder = ModelBuilder(
        cardinality_resolver=CardinalityResolver(
            bridge if bridge is not None else OntologyBridge.bundled(), auxiliary_graph
        ),
        inflector=inflector or InflectInflector(),
        sink=sink,
    )
    builder.build(vocabulary, configuration)
    logger.info(f"[generation] {builder.report.summary().splitlines()[0]}")
    return builder.report


def _load(sources: List[VocabularySource]) -> rdflib.Graph:
    return load_graph((source.uri, source.format) for source in sources)


def with_vocabulary_types(
    configuration: Configuration, vocabulary: VocabularyGraph
) -> Configuration:
    """
    Add every class of the vocabulary namespace to the configured types, in vocabulary order.
    Datatypes, superseded classes and classes that are already configured are left out.

    :param configuration: The run configuration.
    :param vocabulary: The loaded vocabulary graph.
    :return: A copy of the configuration with the added types.
    """
    namespace = NamingRegistry.normalize_uri(configuration.vocabulary_namespace)
    type_mapper = TypeMapper(range_mapping=configuration.range_mapping)
    types = dict(configuration.types)
    for resource in vocabulary.classes():
        uri = NamingRegistry.normalize_uri(resource.uri)
        name = uri[len(namespace) :]
        if (
            not uri.startswith(namespace)
            or not name.isidentifier()
            or name in types
            or resource.superseded_by
            or type_mapper.is_datatype(uri)
            or DATATYPE_URI
            in {uri, *(NamingRegistry.normalize_uri(a) for a in vocabulary.ancestors(uri))}
        ):
            continue
        types[name] = TypeConfig(name)
    logger.info(
        f"[generation] Generating {len(types) - len(configuration.types)} vocabulary types "
        f"in addition to the configured ones"
    )
    return replace(configuration, types=types, all_types=False)
