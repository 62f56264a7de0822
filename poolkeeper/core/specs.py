"""
Parsing of node-group declarations.

A declaration has exactly five colon-separated fields::

    <min-servers>:<max-servers>:<machine-type>:<region>:<name>
"""

from __future__ import annotations

import re

from poolkeeper.core.entities.node_group import NodeGroupSpec
from poolkeeper.core.errors import InvalidNodeGroupName, SpecParseError

SPEC_FORMAT = "<min-servers>:<max-servers>:<machine-type>:<region>:<name>"

_VALID_NAME = re.compile(r"^[a-z0-9A-Z]+[a-z0-9A-Z\-\.\_]*[a-z0-9A-Z]+$|^[a-z0-9A-Z]{1}$")
_NON_NEGATIVE_INT = re.compile(r"^[0-9]+$")


def validate_node_group_name(name: str) -> bool:
    return _VALID_NAME.fullmatch(name) is not None


def _parse_size(token: str, field_name: str) -> int:
    if not _NON_NEGATIVE_INT.fullmatch(token):
        raise SpecParseError(f"failed to set {field_name}: {token}, expected integer")
    return int(token)


def parse_node_group_spec(text: str) -> NodeGroupSpec:
    """
    Parse one declaration into a :class:`NodeGroupSpec`.

    Raises:
        SpecParseError: wrong field count, a non-integer size or ``max < min``.
        InvalidNodeGroupName: the name does not match the allowed pattern.
    """
    tokens = text.split(":")
    if len(tokens) != 5:
        raise SpecParseError(f"expected format `{SPEC_FORMAT}` got {text}")

    min_size = _parse_size(tokens[0], "min size")
    max_size = _parse_size(tokens[1], "max size")
    instance_type, region, name = tokens[2], tokens[3], tokens[4]

    if not validate_node_group_name(name):
        raise InvalidNodeGroupName(name)
    if max_size < min_size:
        raise SpecParseError(f"max size {max_size} is lower than min size {min_size} for node group {name}")

    return NodeGroupSpec(
        name=name,
        min_size=min_size,
        max_size=max_size,
        instance_type=instance_type,
        region=region,
    )


__all__ = ["SPEC_FORMAT", "parse_node_group_spec", "validate_node_group_name"]
