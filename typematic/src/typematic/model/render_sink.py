"""
The interface through which finished class models leave the model builder.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from typing_extensions import List, Protocol

from .class_model import ClassModel


class RenderSink(Protocol):
    """Consumer of finished class models, called once per class in build order."""

    def render(self, class_model: ClassModel) -> None: ...


@dataclass
class CollectingSink:
    """Keeps the class models in memory."""

    models: List[ClassModel] = field(default_factory=list)

    def render(self, class_model: ClassModel) -> None:
        self.models.append(class_model)

    def __getitem__(self, name: str) -> ClassModel:
        for model in self.models:
            if model.name == name:
                return model
        raise KeyError(name)
