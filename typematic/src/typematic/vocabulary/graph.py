from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType

from typing_extensions import Dict, Iterable, List, Mapping, Optional, Tuple

from ..utils import NamingRegistry

ENUMERATION_URI = "http://schema.org/Enumeration"
"""
Normalized URI of the class all schema.org enumerations descend from.
"""


class ResourceKind(str, Enum):
    """Kind of a vocabulary resource."""

    CLASS = "Class"
    PROPERTY = "Property"


@dataclass(frozen=True)
class VocabularyResource:
    """
    A class or a property of the vocabulary. Immutable for the whole generation run.
    """

    uri: str
    kind: ResourceKind
    supertypes: Tuple[str, ...] = ()
    """
    URIs of the direct superclasses (classes) or superproperties (properties).
    """
    label: Optional[str] = None
    comment: Optional[str] = None
    domains: Tuple[str, ...] = ()
    """
    URIs of the classes declaring this property. Empty for classes.
    """
    ranges: Tuple[str, ...] = ()
    """
    URIs of the declared ranges of this property. Empty for classes.
    """
    superseded_by: Optional[str] = None
    """
    URI of the resource that replaces this deprecated one, if any.
    """
    properties: Tuple[str, ...] = ()
    """
    URIs of the properties declared with this class as domain, in declaration order.
    Filled in by :class:`VocabularyGraph`, empty for properties.
    """

    @property
    def name(self) -> str:
        return NamingRegistry.local_name(self.uri)

    @property
    def is_class(self) -> bool:
        return self.kind == ResourceKind.CLASS

    @property
    def is_property(self) -> bool:
        return self.kind == ResourceKind.PROPERTY


@dataclass(frozen=True)
class VocabularyGraph:
    """
    Read-only graph of vocabulary resources keyed by URI.

    The graph is fully built before use and never mutated afterward. Lookups accept both the
    http and https variant of a URI. Resource order is the declaration order given at
    construction, which is what property ordering of the generated classes is based on.
    """

    _resources: Mapping[str, VocabularyResource] = field(repr=False)
    _properties_by_domain: Mapping[str, Tuple[str, ...]] = field(repr=False)

    @classmethod
    def of(cls, resources: Iterable[VocabularyResource]) -> VocabularyGraph:
        """
        Build a graph from resources, linking every class to the properties declaring it as domain.

        :param resources: The class and property resources in declaration order.
        :return: The frozen graph.
        """
        resources = list(resources)
        properties_by_domain: Dict[str, List[str]] = {}
        for resource in resources:
            if not resource.is_property:
                continue
            for domain in resource.domains:
                declared = properties_by_domain.setdefault(
                    NamingRegistry.normalize_uri(domain), []
                )
                if resource.uri not in declared:
                    declared.append(resource.uri)

        by_uri: Dict[str, VocabularyResource] = {}
        for resource in resources:
            key = NamingRegistry.normalize_uri(resource.uri)
            if resource.is_class:
                resource = replace(
                    resource,
                    properties=tuple(properties_by_domain.get(key, ())),
                )
            by_uri[key] = resource

        return cls(
            MappingProxyType(by_uri),
            MappingProxyType({k: tuple(v) for k, v in properties_by_domain.items()}),
        )

    def resource(self, uri: str) -> Optional[VocabularyResource]:
        return self._resources.get(NamingRegistry.normalize_uri(uri))

    def __contains__(self, uri: object) -> bool:
        return NamingRegistry.normalize_uri(uri) in self._resources

    def __len__(self) -> int:
        return len(self._resources)

    def classes(self) -> Tuple[VocabularyResource, ...]:
        return tuple(r for r in self._resources.values() if r.is_class)

    def properties(self) -> Tuple[VocabularyResource, ...]:
        return tuple(r for r in self._resources.values() if r.is_property)

    def properties_of(self, class_uri: str) -> Tuple[VocabularyResource, ...]:
        """
        Get the properties declared with the given class as domain.

        :param class_uri: URI of the class.
        :return: The property resources in declaration order.
        """
        return tuple(
            self._resources[NamingRegistry.normalize_uri(uri)]
            for uri in self._properties_by_domain.get(
                NamingRegistry.normalize_uri(class_uri), ()
            )
            if NamingRegistry.normalize_uri(uri) in self._resources
        )

    def ancestors(self, class_uri: str) -> Tuple[str, ...]:
        """
        Compute all ancestors of a class, closest first (breadth first). Cycles in the
        subclass relation are tolerated.

        :param class_uri: URI of the class.
        :return: The URIs of the ancestors, excluding the class itself.
        """
        start = NamingRegistry.normalize_uri(class_uri)
        seen = {start}
        ordered: List[str] = []
        queue = deque(self._supertypes_of(start))
        while queue:
            uri = queue.popleft()
            key = NamingRegistry.normalize_uri(uri)
            if key in seen:
                continue
            seen.add(key)
            ordered.append(uri)
            queue.extend(self._supertypes_of(key))
        return tuple(ordered)

    def is_enumeration(self, class_uri: str) -> bool:
        """Check whether the class is a schema.org enumeration, i.e. descends from schema:Enumeration."""
        return any(
            NamingRegistry.normalize_uri(a) == ENUMERATION_URI
            for a in self.ancestors(class_uri)
        )

    def _supertypes_of(self, uri: str) -> Tuple[str, ...]:
        resource = self.resource(uri)
        return resource.supertypes if resource else ()
