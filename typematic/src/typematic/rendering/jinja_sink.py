"""
Rendering of finished class models to Python modules with Jinja2 templates.
"""

from __future__ import annotations

import os
import textwrap
from dataclasses import dataclass, field

from jinja2 import Environment, FileSystemLoader
from jinja2.ext import loopcontrols
from typing_extensions import Any, Dict, List, Optional, Sequence

from .. import logger
from ..model import ClassModel, PropertyModel, Primitive
from ..utils import NamingRegistry

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "jinja")


class JinjaRenderer:
    """Renderer for generating Python code using Jinja2 templates."""

    def __init__(self, template_dirs: Sequence[str] = ()):
        """
        Initialize the renderer.
        :param template_dirs: Directories searched for templates before the bundled ones, so a
            template of the same name overrides the bundled template.
        """
        self.env = Environment(
            loader=FileSystemLoader([*template_dirs, TEMPLATE_DIR]),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            extensions=[loopcontrols],
        )
        self.env.filters["docstring"] = docstring

    def render(self, template_name: str, **context) -> str:
        """
        Render a template with the given context.
        :param template_name: Name of the template file.
        :param context: Keyword arguments for the template context.
        :return: Rendered string.
        """
        template = self.env.get_template(template_name)
        return template.render(**context)


@dataclass
class JinjaRenderSink:
    """
    Renders every class model to a Python module holding one dataclass. The modules are kept in
    :attr:`files` until :meth:`write` puts them, with a package ``__init__.py``, in the output
    directory.
    """

    output_dir: Optional[str] = None
    renderer: JinjaRenderer = field(default_factory=JinjaRenderer)
    files: Dict[str, str] = field(default_factory=dict)
    """
    File name to rendered source, in render order.
    """
    class_modules: Dict[str, str] = field(default_factory=dict)
    """
    Class name to module name of every rendered class.
    """

    def render(self, class_model: ClassModel) -> None:
        module = module_name(class_model.name)
        self.files[f"{module}.py"] = self.renderer.render(
            "class_model.py.j2", **class_context(class_model)
        )
        self.class_modules[class_model.name] = module

    def package_init(self) -> str:
        """The package ``__init__.py`` exporting every rendered class."""
        return self.renderer.render("package_init.py.j2", modules=self.class_modules)

    def write(self, output_dir: Optional[str] = None) -> List[str]:
        """
        Write the rendered modules.

        :param output_dir: Target directory, defaults to :attr:`output_dir`.
        :return: The written paths.
        """
        output_dir = output_dir or self.output_dir
        if output_dir is None:
            raise ValueError("No output directory to write the rendered modules to")
        os.makedirs(output_dir, exist_ok=True)
        written = []
        for file_name, source in {**self.files, "__init__.py": self.package_init()}.items():
            path = os.path.join(output_dir, file_name)
            with open(path, "w", encoding="utf-8") as f:
                f.write(source)
            written.append(path)
        logger.info(f"[jinja_sink] Wrote {len(written)} files to {output_dir}")
        return written


def module_name(class_name: str) -> str:
    return NamingRegistry.to_snake_case(class_name)


def docstring(text: Optional[str], indent: int = 4, width: int = 100) -> str:
    """Wrap free text so it can sit inside a triple quoted docstring."""
    if not text:
        return ""
    text = text.replace("\\", "\\\\").replace('"""', "'''")
    prefix = " " * indent
    return "\n".join(
        textwrap.fill(
            paragraph.strip(),
            width=width,
            initial_indent=prefix,
            subsequent_indent=prefix,
        )
        for paragraph in text.split("\n")
        if paragraph.strip()
    )


def class_context(class_model: ClassModel) -> Dict[str, Any]:
    """
    Flatten a class model to the plain values the class template needs.
    """
    fields = []
    if class_model.identifier is not None:
        fields.append(field_context(class_model.identifier, always_optional=True))
    fields.extend(field_context(p) for p in class_model.properties)

    all_properties = list(class_model.properties)
    if class_model.identifier is not None:
        all_properties.append(class_model.identifier)
    uses_datetime = any(
        p.value_type.is_primitive
        and p.value_type.primitive in (Primitive.DATE, Primitive.DATE_TIME, Primitive.TIME)
        for p in all_properties
    )
    return {
        "name": class_model.name,
        "parent": class_model.parent,
        "parent_module": module_name(class_model.parent) if class_model.parent else None,
        "abstract": class_model.abstract,
        "embeddable": class_model.embeddable,
        "comment": class_model.comment,
        "resource_uri": class_model.resource_uri,
        "security": class_model.security,
        "references": [
            (module_name(name), name)
            for name in class_model.references()
            if name != class_model.parent
        ],
        "uses_datetime": uses_datetime,
        "fields": fields,
        "adders": [
            adder_context(p)
            for p in class_model.properties
            if p.is_array and p.writable
        ],
    }


def field_context(prop: PropertyModel, always_optional: bool = False) -> Dict[str, Any]:
    annotation = prop.type_hint
    if always_optional and not prop.nullable:
        annotation = f"Optional[{annotation}]"
    if prop.is_array:
        default = "default_factory=list"
    elif prop.nullable or always_optional:
        default = "default=None"
    else:
        default = None
    metadata = {"cardinality": prop.cardinality.value}
    if prop.resource_uri:
        metadata["uri"] = prop.resource_uri
    for key in ("mapped_by", "inversed_by", "security"):
        if getattr(prop, key) is not None:
            metadata[key] = getattr(prop, key)
    for key in ("unique", "embedded", "is_id"):
        if getattr(prop, key):
            metadata[key] = True
    if prop.groups:
        metadata["groups"] = sorted(prop.groups)
    metadata.update(prop.rendering_hints)

    arguments = [default] if default else []
    if not prop.readable:
        arguments.append("repr=False")
    arguments.append(f"metadata={metadata!r}")
    return {
        "name": prop.field_name,
        "annotation": annotation,
        "definition": f"field({', '.join(arguments)})",
        "comment": prop.comment,
    }


def adder_context(prop: PropertyModel) -> Dict[str, Any]:
    add_name, remove_name = prop.accessor_names()[:2]
    return {
        "field": prop.field_name,
        "add": add_name,
        "remove": remove_name,
        "value_annotation": prop.value_type.python_type_hint,
    }
