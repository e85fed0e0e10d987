from __future__ import annotations

from dataclasses import dataclass

from typing_extensions import Optional, Tuple


class TypematicError(Exception):
    """
    Base class for all errors raised or recorded while building a class model.
    """


@dataclass
class ConfigurationError(TypematicError, ValueError):
    """
    Raised when the configuration is structurally invalid or misses a required entry.
    This is fatal for the whole run and is raised before any model building starts.
    """

    reason: str
    """
    What is wrong with the configuration.
    """
    location: Optional[str] = None
    """
    Dotted path of the offending configuration entry, if known.
    """

    def __post_init__(self):
        where = f" (at {self.location})" if self.location else ""
        super().__init__(f"Invalid configuration{where}: {self.reason}")


@dataclass
class ConfigurationConflict(TypematicError, ValueError):
    """
    Raised when the configuration of a single type cannot be resolved consistently,
    e.g. a property configured with both mapped_by and inversed_by, or a parent
    override naming a type that is not generated.

    It is fatal for the offending type only, the remaining types are still built.
    """

    type_name: str
    """
    The type whose resolution failed.
    """
    reason: str
    """
    Description of the conflict.
    """
    property_name: Optional[str] = None
    """
    The property that caused the conflict, if any.
    """

    def __post_init__(self):
        subject = (
            f"{self.type_name}.{self.property_name}"
            if self.property_name
            else self.type_name
        )
        super().__init__(f"Configuration conflict in {subject}: {self.reason}")


@dataclass
class UnresolvableReference(TypematicError, LookupError):
    """
    A property's value type references a class that is not generated.
    The property degrades to an untyped value, this is recorded as a warning and never raised.
    """

    type_name: str
    property_name: str
    reference: str
    """
    The class name or URI that could not be resolved.
    """

    def __post_init__(self):
        super().__init__(
            f"{self.type_name}.{self.property_name} references {self.reference} "
            f"which is not a generated type. Using an untyped value instead."
        )


@dataclass
class AmbiguousRange(TypematicError):
    """
    A property has more than one candidate range. A winner is still chosen, this is recorded as a warning.
    """

    property_uri: str
    candidates: Tuple[str, ...]
    chosen: str

    def __post_init__(self):
        super().__init__(
            f"Property {self.property_uri} has ambiguous ranges "
            f"{', '.join(self.candidates)}. Using {self.chosen}."
        )


@dataclass
class InheritanceCollision(TypematicError):
    """
    The same property name is declared by more than one inlined ancestor of a type.
    The closest declaration wins, this is recorded as a warning.
    """

    type_name: str
    property_name: str
    kept_from: str
    ignored_from: str

    def __post_init__(self):
        super().__init__(
            f"{self.type_name}.{self.property_name} is declared by both {self.kept_from} "
            f"and {self.ignored_from}. Keeping the declaration of {self.kept_from}."
        )


@dataclass
class TypeBuildFailure(TypematicError, RuntimeError):
    """
    An unexpected error occurred while one type was resolved. The remaining types are still built.
    """

    type_name: str
    cause: Exception

    def __post_init__(self):
        super().__init__(
            f"Building {self.type_name} failed: {type(self.cause).__name__}: {self.cause}"
        )


@dataclass
class RenderFailure(TypematicError, RuntimeError):
    """
    The render sink failed for one class. The remaining classes are still rendered.
    """

    class_name: str
    cause: Exception

    def __post_init__(self):
        super().__init__(f"Rendering of {self.class_name} failed: {self.cause}")


@dataclass
class GraphLoadFailure(TypematicError, RuntimeError):
    """
    A vocabulary or auxiliary ontology source is unreachable or malformed.
    Fatal for the whole run, raised before any class is processed.
    """

    source: str
    cause: Exception

    def __post_init__(self):
        super().__init__(f"Could not load graph from {self.source}: {self.cause}")
