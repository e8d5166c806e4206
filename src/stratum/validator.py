"""
Validator interface and validation error records.

Validators inspect a fully merged tree and report every problem they find.
The Builder and MutableConfig treat any reported error as fatal.
"""

from __future__ import annotations

import abc as _abc
import collections.abc as _cabc
import dataclasses as _dataclasses

import stratum.keypath as keypath
import stratum.meta as meta
import stratum.tree as tree


@_dataclasses.dataclass(frozen=True, slots=True)
class ValidationError:
    """
    One problem found by a validator.

    Attributes:
        path: Location of the offending value (empty for the root).
        code: Machine-readable code, e.g. "type" or "required".
        message: Human-readable description.
        range: Source location of the offending value, when known.
    """

    path: keypath.KeyPath
    code: str
    message: str
    range: meta.Range | None = None

    def __str__(self) -> str:
        if self.path:
            return f"{self.path} [{self.code}] {self.message}"
        return f"[{self.code}] {self.message}"


class Validator(_abc.ABC):
    """Checks a merged configuration tree."""

    @_abc.abstractmethod
    def validate(self, root: tree.Node) -> list[ValidationError]:
        """Return every problem found in the tree; an empty list means valid."""
        ...

    @_abc.abstractmethod
    def schema_type(self) -> str:
        """Short name of the schema language, e.g. "jsonschema"."""
        ...


def run_validators(
    validators: _cabc.Sequence[Validator], root: tree.Node
) -> list[ValidationError]:
    """Run every validator and concatenate the errors, in validator order."""
    found: list[ValidationError] = []
    for v in validators:
        found.extend(v.validate(root))
    return found


def range_at(root: tree.Node, path: keypath.KeyPath) -> meta.Range | None:
    """Source range of the node at path, or of its closest existing ancestor."""
    current = keypath.KeyPath(path)
    while True:
        node = root.get(current)
        if node is not None:
            return node.range
        if not current:
            return None
        current = keypath.KeyPath(current[:-1])
