"""Extraction of the ``export const meta = {...}`` block from MDX ESM."""

from __future__ import annotations

import logging
from typing import Any, Iterable

import esprima

from docsync.models import Meta

LOGGER = logging.getLogger(__name__)


def parse_esm(source: str) -> Any:
    """Parse an MDX ESM block as an ES module.

    Raises ``esprima.Error`` when the block is not valid JavaScript.
    """
    return esprima.parseModule(source, {"jsx": True})


def _literal_value(node: Any) -> Any:
    regex = getattr(node, "regex", None)
    if regex is not None:
        return f"/{regex.pattern}/{regex.flags}"
    return node.value


def object_from_expression(node: Any) -> Meta:
    """Convert an ``ObjectExpression`` into a dict of its literal properties.

    Only identifier keys with literal values survive; spreads, computed keys
    and non-literal values are dropped.
    """
    result: Meta = {}
    for prop in node.properties:
        if prop.type != "Property" or prop.computed:
            continue
        key = prop.key.name if prop.key.type == "Identifier" else None
        if not key:
            continue
        if prop.value.type != "Literal":
            LOGGER.debug("Dropping non-literal meta value for key %r", key)
            continue
        result[key] = _literal_value(prop.value)
    return result


def _meta_declaration(statement: Any) -> Any | None:
    if statement.type != "ExportNamedDeclaration":
        return None
    declaration = statement.declaration
    if declaration is None or declaration.type != "VariableDeclaration":
        return None
    for declarator in declaration.declarations:
        if declarator.id.type == "Identifier" and declarator.id.name == "meta":
            return declarator
    return None


def extract_meta_export(programs: Iterable[Any]) -> Meta | None:
    """Return the literal ``meta`` export from parsed ESM programs, if any."""
    for program in programs:
        for statement in program.body:
            declarator = _meta_declaration(statement)
            if declarator is None:
                continue
            init = declarator.init
            if init is None or init.type != "ObjectExpression":
                return None
            return object_from_expression(init)
    return None
