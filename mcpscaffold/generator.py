import json
import logging
import re
from typing import List

from .parser import OpenAPIParser, Operation, Parameter, ParameterLocation
from .typemap import optional, validation_expression

logger = logging.getLogger(__name__)

# Python keywords that cannot be used as variable names
PYTHON_KEYWORDS = [
    "False", "None", "True", "and", "as", "assert", "async", "await",
    "break", "class", "continue", "def", "del", "elif", "else", "except",
    "finally", "for", "from", "global", "if", "import", "in", "is",
    "lambda", "nonlocal", "not", "or", "pass", "raise", "return", "try",
    "while", "with", "yield"
]

# Methods that always send the full parameter object as a JSON body
BODY_METHODS = ("POST", "PUT", "PATCH")

JSON_HEADERS = '{"Content-Type": "application/json"}'

IMPORTS = '''"""
Generated MCP server from OpenAPI spec.
"""

import asyncio
import json
import os
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlencode

import httpx
import mcp.types as types
from dotenv import load_dotenv
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from pydantic import BaseModel, Field, create_model

load_dotenv()
'''

BACKEND_HELPER = '''
async def call_backend(
    path: str,
    method: str = "GET",
    headers: Optional[dict[str, str]] = None,
    body: Optional[str] = None,
) -> Any:
    """
    Calls the backend REST API.
    """
    base_url = os.environ.get("BACKEND_URL", "")
    async with httpx.AsyncClient() as client:
        response = await client.request(method, f"{base_url}{path}", headers=headers, content=body)
    if response.is_error:
        raise RuntimeError(f"Backend error: {response.status_code} {response.reason_phrase}")
    return response.json()


def query_value(value: Any) -> str:
    """
    Formats an argument for the query string.
    Booleans are lowercase and lists are joined with commas.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ",".join("" if item is None else query_value(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)
'''

APP_INIT = '''
server = Server("Generated-MCP", version="1.0.0")

ToolHandler = Callable[[dict[str, Any]], Awaitable[list[types.TextContent]]]
_tools: dict[str, tuple[type[BaseModel], ToolHandler]] = {}


def tool(name: str, shape: dict[str, tuple[Any, Any]]):
    """
    Registers a tool whose arguments are validated against ``shape``.

    ``shape`` maps each argument name to an ``(annotation, default)`` pair;
    a default of ``...`` marks the argument as required.
    """
    fields = {
        f"field_{index}": (annotation, Field(default, alias=key))
        for index, (key, (annotation, default)) in enumerate(shape.items())
    }
    model = create_model(name, **fields)

    def register(handler: ToolHandler) -> ToolHandler:
        _tools[name] = (model, handler)
        return handler

    return register


@server.list_tools()
async def _list_tools() -> list[types.Tool]:
    return [
        types.Tool(name=name, inputSchema=model.model_json_schema(by_alias=True))
        for name, (model, _) in _tools.items()
    ]


@server.call_tool()
async def _call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
    if name not in _tools:
        raise ValueError(f"Unknown tool: {name}")
    model, handler = _tools[name]
    params = model.model_validate(arguments or {}).model_dump(by_alias=True, exclude_unset=True)
    return await handler(params)
'''

MAIN_BLOCK = '''
async def main() -> None:
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    asyncio.run(main())
'''

RESPONSE_BLOCK = '''    return [
        types.TextContent(
            type="text",
            text=json.dumps(result, indent=2),
        )
    ]
'''


def sanitize_variable_name(name: str) -> str:
    """
    Sanitizes a string to be a valid Python variable name.
    - Replaces invalid characters with underscores.
    - Prepends an underscore if it starts with a digit or is empty.
    - Appends an underscore if it's a Python keyword.
    """
    if not isinstance(name, str):
        name = str(name)

    name = re.sub(r'[^0-9a-zA-Z_]', '_', name)

    if not name:
        return "_var"

    if name[0].isdigit():
        name = "_" + name

    if name in PYTHON_KEYWORDS:
        name += "_"
    return name


def tool_identifier(operation: Operation) -> str:
    """operationId when present, otherwise ``<method>_<path with / replaced by _>``."""
    if operation.operation_id:
        return operation.operation_id
    synthesized = f"{operation.method}_{operation.path.replace('/', '_')}"
    logger.debug(f"Synthesized tool name for {operation.method.upper()} {operation.path}: {synthesized}")
    return synthesized


def py_string(value: str) -> str:
    """Renders ``value`` as a double-quoted Python string literal."""
    return json.dumps(value)


def render_field(param: Parameter) -> str:
    """Renders the ``(annotation, default)`` pair for one tool argument."""
    expression = validation_expression(param.kind)
    if param.required:
        return f"({expression}, ...)"
    return f"({optional(expression)}, None)"


class MCPGenerator:
    def __init__(self, parser: OpenAPIParser):
        self.parser = parser

    def generate(self) -> str:
        """Builds the full server source: fixed preamble, one block per operation, fixed epilogue."""
        chunks = [
            self._generate_imports(),
            self._generate_backend_helper(),
            self._generate_app_init(),
        ]
        tools = self._generate_tools()
        chunks.extend(tools)
        chunks.append(self._generate_main())

        logger.info(f"Generated {len(tools)} tool(s)")
        return "\n".join(chunks)

    def _generate_imports(self) -> str:
        return IMPORTS

    def _generate_backend_helper(self) -> str:
        return BACKEND_HELPER

    def _generate_app_init(self) -> str:
        return APP_INIT

    def _generate_main(self) -> str:
        return MAIN_BLOCK

    def _generate_tools(self) -> List[str]:
        return [self._generate_tool(op) for op in self.parser.iter_operations()]

    def _generate_tool(self, operation: Operation) -> str:
        name = tool_identifier(operation)
        params = self.parser.collect_parameters(operation)
        has_query_params = any(p.location == ParameterLocation.QUERY for p in params)

        lines = ["", "@tool(", f"    {py_string(name)},"]
        lines.append(self._generate_shape(params))
        lines.append(")")
        lines.append(
            f"async def handle_{sanitize_variable_name(name)}(params: dict[str, Any]) -> list[types.TextContent]:"
        )

        if has_query_params:
            lines.append("    search = urlencode({key: query_value(value) for key, value in params.items() if value})")
            lines.append("")
            # Path braces are literal text inside the f-string.
            escaped_path = operation.path.replace("{", "{{").replace("}", "}}")
            request_path = "f" + py_string(escaped_path + "?{search}")
        else:
            request_path = py_string(operation.path)

        lines.append("    result = await call_backend(")
        lines.append(f"        {request_path},")
        for option in self._request_options(operation.method.upper(), bool(params)):
            lines.append(f"        {option},")
        lines.append("    )")
        lines.append("")

        return "\n".join(lines) + "\n" + RESPONSE_BLOCK

    def _generate_shape(self, params: List[Parameter]) -> str:
        if not params:
            return "    {},"
        entries = [f"        {py_string(p.name)}: {render_field(p)}," for p in params]
        return "\n".join(["    {"] + entries + ["    },"])

    def _request_options(self, method: str, has_params: bool) -> List[str]:
        options = [f"method={py_string(method)}"]
        if method in BODY_METHODS or (method == "DELETE" and has_params):
            options.append(f"headers={JSON_HEADERS}")
            options.append("body=json.dumps(params)")
        return options
