from .class_model import (
    Cardinality,
    ClassModel,
    Multiplicity,
    Primitive,
    PropertyModel,
    ValueKind,
    ValueType,
)
from .render_sink import CollectingSink, RenderSink
