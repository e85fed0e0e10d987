from .cardinality_resolver import CardinalityResolver
from .model_builder import ModelBuilder
from .ontology_bridge import OntologyBridge
from .type_mapper import TypeMapper
