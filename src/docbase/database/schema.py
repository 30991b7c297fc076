"""
Collection schemas.

Schemas are declarative pydantic models, loadable from JSON:

    {
      "recipes": {
        "properties": {
          "name": {"type": "string", "required": true},
          "rating": {"type": "float"},
          "tags": {"type": "list", "items": {"type": "string"}}
        },
        "additional_properties": false
      }
    }

`CollectionSchema.check()` raises SchemaValidationError listing every issue.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import date, datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, TypeAdapter

from docbase.database.primitives import Blob, GeoPoint
from docbase.errors import SchemaIssue, SchemaValidationError

FieldType = Literal[
    "any",
    "string",
    "int",
    "float",
    "bool",
    "list",
    "map",
    "blob",
    "timestamp",
    "date",
    "geo_point",
    "document",
]


def _type_matches(field_type: str, value: Any) -> bool:
    from docbase.database.document import Document

    match field_type:
        case "any":
            return True
        case "string":
            return isinstance(value, str)
        case "int":
            return isinstance(value, int) and not isinstance(value, bool)
        case "float":
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        case "bool":
            return isinstance(value, bool)
        case "list":
            return isinstance(value, (list, tuple))
        case "map":
            return isinstance(value, Mapping)
        case "blob":
            return isinstance(value, (Blob, bytes))
        case "timestamp":
            return isinstance(value, datetime)
        case "date":
            return isinstance(value, date) and not isinstance(value, datetime)
        case "geo_point":
            return isinstance(value, GeoPoint)
        case "document":
            return isinstance(value, Document)
    return False


class FieldSchema(BaseModel):
    """Schema of a single field value."""

    model_config = ConfigDict(frozen=True)

    type: FieldType = "any"
    required: bool = False
    nullable: bool = True
    items: FieldSchema | None = None  # For "list"
    properties: dict[str, FieldSchema] | None = None  # For "map"
    max_length: int | None = None  # For "string" and "list"

    def collect_issues(self, value: Any, path: str, issues: list[SchemaIssue]) -> None:
        if value is None:
            if not self.nullable:
                issues.append(SchemaIssue(path, "must not be null"))
            return

        if not _type_matches(self.type, value):
            issues.append(
                SchemaIssue(path, f"expected {self.type}, got {type(value).__name__}")
            )
            return

        if self.max_length is not None and isinstance(value, (str, list, tuple)):
            if len(value) > self.max_length:
                issues.append(SchemaIssue(path, f"longer than {self.max_length}"))

        if self.type == "list" and self.items is not None:
            for i, item in enumerate(value):
                self.items.collect_issues(item, f"{path}[{i}]", issues)

        if self.type == "map" and self.properties is not None:
            for name, schema in self.properties.items():
                child_path = f"{path}.{name}"
                if name not in value:
                    if schema.required:
                        issues.append(SchemaIssue(child_path, "is required"))
                    continue
                schema.collect_issues(value[name], child_path, issues)


class CollectionSchema(BaseModel):
    """Schema applied to every document of a collection."""

    model_config = ConfigDict(frozen=True)

    properties: dict[str, FieldSchema] = {}
    additional_properties: bool = True

    def issues(self, data: Mapping[str, Any], partial: bool = False) -> list[SchemaIssue]:
        """
        List violations in `data`.

        With `partial=True` (patches) only the provided fields are checked
        and missing required fields are not reported.
        """
        issues: list[SchemaIssue] = []
        for name, schema in self.properties.items():
            if name not in data:
                if schema.required and not partial:
                    issues.append(SchemaIssue(name, "is required"))
                continue
            schema.collect_issues(data[name], name, issues)

        if not self.additional_properties:
            for name in data:
                if name not in self.properties:
                    issues.append(SchemaIssue(name, "is not declared in the schema"))
        return issues

    def check(self, collection_id: str, data: Mapping[str, Any], partial: bool = False) -> None:
        issues = self.issues(data, partial=partial)
        if issues:
            raise SchemaValidationError(collection_id, issues)


_SCHEMA_FILE = TypeAdapter(dict[str, CollectionSchema])


def parse_schemas(raw: Mapping[str, Any] | str | bytes) -> dict[str, CollectionSchema]:
    """Parse a {collection_id: schema} mapping from JSON text or decoded JSON."""
    if isinstance(raw, (str, bytes)):
        return _SCHEMA_FILE.validate_json(raw)
    return _SCHEMA_FILE.validate_python(raw)


def load_schemas(path: str | Path) -> dict[str, CollectionSchema]:
    """Load a schema file (see module docstring for the format)."""
    with open(path, encoding="utf-8") as f:
        return parse_schemas(json.load(f))
