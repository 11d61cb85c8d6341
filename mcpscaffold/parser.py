import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import yaml

from .errors import OpenAPIFileReadError, OpenAPIParseError
from .typemap import STRING, SchemaKind, schema_kind

logger = logging.getLogger(__name__)

SCHEMA_REF_PREFIX = "#/components/schemas/"
JSON_MEDIA_TYPE = "application/json"


class ParameterLocation(Enum):
    QUERY = "query"
    BODY = "body"


@dataclass
class Parameter:
    name: str
    required: bool
    kind: SchemaKind
    location: ParameterLocation


@dataclass
class Operation:
    path: str
    method: str
    definition: Dict[str, Any]
    operation_id: Optional[str] = None


def lookup(node: Any, *keys: str) -> Any:
    """Follows ``keys`` through nested dicts, returning None at the first broken link."""
    for key in keys:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def load_openapi_spec(filepath: Path) -> Any:
    """Reads an OpenAPI document (JSON, or YAML by suffix) into plain Python values.

    Key order of every mapping is preserved; the rest of the pipeline relies on it.
    """
    filepath = Path(filepath)
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise OpenAPIFileReadError(filepath, str(e)) from e

    try:
        if filepath.suffix.lower() in (".yaml", ".yml"):
            spec = yaml.safe_load(content)
        else:
            spec = json.loads(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise OpenAPIParseError(filepath, str(e)) from e

    logger.debug(f"Loaded OpenAPI description from {filepath}")
    return spec


class OpenAPIParser:
    """Read-only view over a parsed OpenAPI description.

    Every accessor tolerates missing or malformed fields and degrades to
    "no data" instead of raising.
    """

    def __init__(self, spec: Any):
        self.spec = spec

    @classmethod
    def from_file(cls, filepath: Path) -> "OpenAPIParser":
        return cls(load_openapi_spec(filepath))

    def iter_operations(self) -> Iterator[Operation]:
        """Yields every (path, method, operation) in document order."""
        paths = lookup(self.spec, "paths")
        if not isinstance(paths, dict):
            return
        for path, path_item in paths.items():
            if not isinstance(path_item, dict):
                continue
            for method, op_def in path_item.items():
                if not isinstance(op_def, dict):
                    continue
                operation_id = op_def.get("operationId")
                yield Operation(
                    path=str(path),
                    method=str(method),
                    definition=op_def,
                    operation_id=operation_id if isinstance(operation_id, str) else None,
                )

    def resolve_schema_ref(self, ref: str) -> Any:
        """Resolves ``#/components/schemas/<Name>`` with a single lookup. No nested refs."""
        name = ref.removeprefix(SCHEMA_REF_PREFIX)
        schemas = lookup(self.spec, "components", "schemas")
        if not isinstance(schemas, dict) or name not in schemas:
            return None
        return schemas[name]

    def resolve_request_body_schema(self, operation: Operation) -> Any:
        """Returns the effective JSON request body schema, or None when there is none."""
        schema = lookup(operation.definition, "requestBody", "content", JSON_MEDIA_TYPE, "schema")
        if not isinstance(schema, dict):
            return None

        ref = schema.get("$ref")
        if isinstance(ref, str):
            return self.resolve_schema_ref(ref)
        return schema

    def collect_parameters(self, operation: Operation) -> List[Parameter]:
        """Query parameters first, then request body properties.

        Names are not deduplicated across the two phases.
        """
        parameters = self._query_parameters(operation)
        parameters.extend(self._body_parameters(operation))
        return parameters

    def _query_parameters(self, operation: Operation) -> List[Parameter]:
        params_defs = operation.definition.get("parameters")
        if not isinstance(params_defs, list):
            return []

        parameters = []
        for param_def in params_defs:
            name = lookup(param_def, "name")
            location = lookup(param_def, "in")
            if not isinstance(name, str) or location != ParameterLocation.QUERY.value:
                continue
            # Declared query schemas are ignored: query values travel as optional strings.
            parameters.append(
                Parameter(name=name, required=False, kind=STRING, location=ParameterLocation.QUERY)
            )
        return parameters

    def _body_parameters(self, operation: Operation) -> List[Parameter]:
        schema = self.resolve_request_body_schema(operation)
        properties = lookup(schema, "properties")
        if not isinstance(properties, dict):
            return []

        required = lookup(schema, "required")
        required_names = [r for r in required if isinstance(r, str)] if isinstance(required, list) else []

        return [
            Parameter(
                name=str(prop_name),
                required=prop_name in required_names,
                kind=schema_kind(prop_schema),
                location=ParameterLocation.BODY,
            )
            for prop_name, prop_schema in properties.items()
        ]
