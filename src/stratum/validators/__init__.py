"""
Concrete validators.

- JsonSchemaValidator: JSON Schema (Draft 2020-12) via jsonschema
- PydanticValidator: pydantic model classes
"""

from stratum.validators.json_schema import JsonSchemaValidator
from stratum.validators.pydantic_model import PydanticValidator

__all__ = ["JsonSchemaValidator", "PydanticValidator"]
