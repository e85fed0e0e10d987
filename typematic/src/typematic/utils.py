from __future__ import annotations

import re

import rdflib
from typing_extensions import Any, Iterable, List, Optional


class NamingRegistry:
    """Registry for converting vocabulary URIs and names to identifiers used by the generated code."""

    @staticmethod
    def local_name(uri: Any) -> str:
        """Extract the local name of a URI, i.e. the part after the last '#' or '/'."""
        uri_str = str(uri)
        if "#" in uri_str:
            return uri_str.split("#")[-1]
        return uri_str.rstrip("/").split("/")[-1]

    @staticmethod
    def to_identifier(uri: Any) -> str:
        """Convert a URI to a valid Python identifier"""
        return re.sub(r"[^a-zA-Z0-9_]", "_", NamingRegistry.local_name(uri))

    @staticmethod
    def to_snake_case(name: str) -> str:
        """Convert a name like 'familyName' or 'FamilyName' to 'family_name'"""
        s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", name)
        s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
        return s2.lower()

    @staticmethod
    def normalize_uri(uri: Any) -> str:
        """
        Normalize the scheme of a URI so that http and https variants of the same
        vocabulary term compare equal (schema.org is published under both).
        """
        uri_str = str(uri)
        if uri_str.startswith("https://"):
            return "http://" + uri_str[len("https://") :]
        return uri_str


def unique_in_order(items: Iterable[Any]) -> List[Any]:
    """De-duplicate while preserving order."""
    return list(dict.fromkeys(items))


def first_literal(graph: rdflib.Graph, subject: Any, predicate: Any) -> Optional[str]:
    """
    Get the first literal object of a subject/predicate pair.
    Untagged and English literals come first, the rest is sorted so that multiple values give a stable result.

    :param graph: The graph to look in.
    :param subject: The subject node.
    :param predicate: The predicate to follow.
    :return: The string value or None when the graph has no such triple.
    """
    values = sorted(
        graph.objects(subject, predicate),
        key=lambda o: (getattr(o, "language", None) not in (None, "en"), str(o)),
    )
    return str(values[0]) if values else None
