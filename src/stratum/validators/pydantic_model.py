"""
Validation of configuration trees against pydantic models.

The merged tree is converted to plain data and passed to
``model.model_validate``. Each pydantic error becomes a ValidationError:
``loc`` becomes the path, ``type`` the code and ``msg`` the message.
"""

from __future__ import annotations

import logging as _logging

import pydantic as _pydantic

import stratum.keypath as keypath
import stratum.tree as tree
import stratum.validator as validator
import stratum.validators.json_schema as json_schema

_logger = _logging.getLogger(__name__)

SCHEMA_TYPE = "pydantic"


class PydanticValidator(validator.Validator):
    """Validator that checks the tree against a pydantic model class."""

    def __init__(self, model: type[_pydantic.BaseModel], *, strict: bool | None = None) -> None:
        """
        Args:
            model: The model the whole configuration must satisfy.
            strict: Passed through to model_validate. None uses the model's
                own configuration.
        """
        self._model = model
        self._strict = strict

    @property
    def model(self) -> type[_pydantic.BaseModel]:
        return self._model

    def schema_type(self) -> str:
        return SCHEMA_TYPE

    def validate(self, root: tree.Node) -> list[validator.ValidationError]:
        instance = json_schema.tree_instance(root)
        try:
            self._model.model_validate(instance, strict=self._strict)
        except _pydantic.ValidationError as e:
            found: list[validator.ValidationError] = []
            for detail in e.errors():
                path = keypath.KeyPath(str(part) for part in detail["loc"])
                found.append(
                    validator.ValidationError(
                        path=path,
                        code=detail["type"],
                        message=detail["msg"],
                        range=validator.range_at(root, path),
                    )
                )
            _logger.debug("Model %s rejected configuration: %d error(s)", self._model.__name__, len(found))
            return found
        return []
