from __future__ import annotations

import json
import os
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType

from typing_extensions import Mapping, Optional

from .. import logger
from ..utils import NamingRegistry

BUNDLED_TABLE = os.path.join(os.path.dirname(__file__), "data", "goodrelations_bridge.json")


@dataclass(frozen=True)
class OntologyBridge:
    """
    Static cross reference from vocabulary properties to the properties of an auxiliary ontology
    that encodes cardinality restrictions (GoodRelations for schema.org).

    Not every property has a counterpart, a missing entry is the normal case.
    """

    table: Mapping[str, str]
    """
    Normalized vocabulary property URI to auxiliary property URI.
    """
    version: Optional[str] = None

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, str], version: Optional[str] = None
    ) -> OntologyBridge:
        """
        Create a bridge from full URIs.

        :param mapping: Vocabulary property URI to auxiliary property URI.
        :param version: Version of the table, informative only.
        """
        return cls(
            MappingProxyType(
                {NamingRegistry.normalize_uri(k): str(v) for k, v in mapping.items()}
            ),
            version,
        )

    @classmethod
    def from_file(cls, path: str) -> OntologyBridge:
        """
        Load a bridge table. The file holds the two namespaces and a mapping of local names.

        :param path: Path of the JSON table.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        vocabulary_ns = data["vocabulary_namespace"]
        auxiliary_ns = data["auxiliary_namespace"]
        bridge = cls.from_mapping(
            {
                vocabulary_ns + local: auxiliary_ns + auxiliary_local
                for local, auxiliary_local in data["properties"].items()
            },
            data.get("version"),
        )
        logger.debug(
            f"[ontology_bridge] Loaded {len(bridge.table)} mappings from {path} "
            f"(version {bridge.version})"
        )
        return bridge

    @staticmethod
    @lru_cache(maxsize=None)
    def bundled() -> OntologyBridge:
        """The schema.org to GoodRelations table shipped with the package, loaded once."""
        return OntologyBridge.from_file(BUNDLED_TABLE)

    @classmethod
    def empty(cls) -> OntologyBridge:
        return cls(MappingProxyType({}))

    def lookup(self, property_uri: str) -> Optional[str]:
        """
        Find the auxiliary ontology counterpart of a vocabulary property.

        :param property_uri: URI of the vocabulary property, http or https.
        :return: The auxiliary property URI or None when there is no counterpart.
        """
        return self.table.get(NamingRegistry.normalize_uri(property_uri))

    def __contains__(self, property_uri: object) -> bool:
        return self.lookup(str(property_uri)) is not None
