"""Command line entry point: ``typematic OUTPUT [CONFIG]``."""

from __future__ import annotations

import argparse
import logging
import os

from typing_extensions import List, Optional

from . import handler, logger
from .configuration import Configuration, load_configuration
from .exceptions import ConfigurationError, GraphLoadFailure
from .generation import generate
from .rendering import JinjaRenderer, JinjaRenderSink

DEFAULT_CONFIG_FILE = "schema.yaml"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="typematic",
        description="Generate Python dataclasses from an RDF vocabulary and a YAML configuration.",
    )
    parser.add_argument("output", help="Directory the generated modules are written to")
    parser.add_argument(
        "config",
        nargs="?",
        default=None,
        help=f"Path of the YAML configuration (default: {DEFAULT_CONFIG_FILE} if it exists, "
        f"otherwise the entire vocabulary is generated)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build and render the classes without writing any file",
    )
    return parser


def configuration_of(config: Optional[str]) -> Configuration:
    """
    Load the configuration named on the command line, else the default file of the working
    directory, else generate the entire vocabulary.

    :raises ConfigurationError: When a named or found file cannot be loaded.
    """
    if config is not None:
        return load_configuration(config)
    if os.path.isfile(DEFAULT_CONFIG_FILE):
        return load_configuration(DEFAULT_CONFIG_FILE)
    logger.warning(
        f"[cli] No {DEFAULT_CONFIG_FILE} found, the entire vocabulary will be generated"
    )
    return Configuration(all_types=True)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the generator.

    :return: 0 on success, 1 when the run could not start or any type failed.
    """
    args = build_parser().parse_args(argv)
    try:
        configuration = configuration_of(args.config)
    except ConfigurationError as exc:
        logger.error(f"[cli] {exc}")
        return 1
    if configuration.debug:
        handler.setLevel(logging.DEBUG)

    sink = JinjaRenderSink(
        args.output, renderer=JinjaRenderer(configuration.generator_templates)
    )
    try:
        report = generate(configuration, sink)
    except GraphLoadFailure as exc:
        logger.error(f"[cli] {exc}")
        return 1
    if not args.dry_run:
        sink.write()
    print(report.summary())
    return 0 if report.succeeded else 1
