import os

import pytest
import rdflib

from typematic.configuration import Configuration, load_configuration
from typematic.model import CollectingSink
from typematic.vocabulary import extract_vocabulary
from typematic.vocabulary_to_model import CardinalityResolver, ModelBuilder, OntologyBridge

DATASET = os.path.join(os.path.dirname(__file__), "dataset")
SCHEMA = "http://schema.org/"
AUX = "http://example.org/auxiliary#"


def dataset_path(file_name: str) -> str:
    return os.path.join(DATASET, file_name)


@pytest.fixture(scope="session")
def schema_graph() -> rdflib.Graph:
    return rdflib.Graph().parse(dataset_path("schema_subset.ttl"), format="turtle")


@pytest.fixture(scope="session")
def vocabulary(schema_graph):
    return extract_vocabulary(schema_graph)


@pytest.fixture(scope="session")
def auxiliary_graph() -> rdflib.Graph:
    return rdflib.Graph().parse(dataset_path("auxiliary.ttl"), format="turtle")


@pytest.fixture
def bridge() -> OntologyBridge:
    return OntologyBridge.from_mapping(
        {
            SCHEMA + "address": AUX + "hasAddress",
            SCHEMA + "email": AUX + "hasEmail",
            SCHEMA + "employee": AUX + "employs",
            SCHEMA + "worksFor": AUX + "employer",
            SCHEMA + "knows": AUX + "acquaintance",
        }
    )


@pytest.fixture
def resolver(bridge, auxiliary_graph) -> CardinalityResolver:
    return CardinalityResolver(bridge, auxiliary_graph)


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def builder(resolver, sink) -> ModelBuilder:
    return ModelBuilder(cardinality_resolver=resolver, sink=sink)


@pytest.fixture
def e2e_configuration() -> Configuration:
    return load_configuration(dataset_path("schema.yml"))
