"""
Response Validator Module
Validates parsed collaborator responses against JSON schemas.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from jsonschema import Draft7Validator, ValidationError

from scholar_matcher.errors import ConfigurationError, MalformedResponseError

logger = structlog.get_logger(__name__)

DEFAULT_SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"


class ResponseValidator:
    """Validates collaborator payloads against JSON schemas."""

    def __init__(self, schema_dir: Optional[Path] = None):
        """
        Initialize validator with schema directory.

        Args:
            schema_dir: Path to directory containing JSON schemas
        """
        self.schema_dir = schema_dir or DEFAULT_SCHEMA_DIR
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Load JSON schema from file.

        Args:
            schema_name: Schema filename (e.g., "evidence_response_schema.json")

        Returns:
            Loaded schema dictionary

        Raises:
            ConfigurationError: If schema file not found or invalid
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self.schema_dir / schema_name
        if not schema_path.exists():
            logger.error("schema_not_found", schema_name=schema_name, schema_path=str(schema_path))
            raise ConfigurationError(f"Schema file not found: {schema_path}")

        try:
            with open(schema_path, "r", encoding="utf-8") as f:
                schema = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("schema_invalid_json", schema_name=schema_name, error=str(e))
            raise ConfigurationError(f"Invalid JSON in schema {schema_name}: {e}") from e

        self._schemas[schema_name] = schema
        logger.debug("schema_loaded", schema_name=schema_name)
        return schema

    def validate(self, payload: Any, schema_name: str) -> None:
        """
        Validate a parsed payload against a schema.

        Raises:
            MalformedResponseError: If validation fails, with one line per problem
        """
        schema = self.load_schema(schema_name)
        validator = Draft7Validator(schema)

        errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.absolute_path))
        if not errors:
            return

        logger.warning("response_validation_failed", schema_name=schema_name, error_count=len(errors))
        raise MalformedResponseError("; ".join(self._format_validation_errors(errors)))

    def _format_validation_errors(self, errors: List[ValidationError]) -> List[str]:
        """Format validation errors into short messages."""
        messages = []

        for error in errors:
            path = " -> ".join([str(p) for p in error.absolute_path]) or "(root)"

            if error.validator == "required":
                messages.append(f"missing field at {path}: {error.message}")
            elif error.validator == "type":
                messages.append(f"type mismatch at '{path}': expected {error.validator_value}")
            elif error.validator == "minLength":
                messages.append(f"empty value at '{path}'")
            else:
                messages.append(f"invalid value at '{path}': {error.message}")

        return messages


_default_validator: Optional[ResponseValidator] = None


def get_default_validator() -> ResponseValidator:
    """Get or create the default ResponseValidator instance."""
    global _default_validator
    if _default_validator is None:
        _default_validator = ResponseValidator()
    return _default_validator
