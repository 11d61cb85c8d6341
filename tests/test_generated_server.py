import asyncio
import importlib.util
import json
import sys
from pathlib import Path

import httpx
import mcp.types as types
import pytest

from mcpscaffold.generator import MCPGenerator
from mcpscaffold.parser import OpenAPIParser
from mcpscaffold.scaffold import generate_mcp_server

FIXTURE_DIR = Path(__file__).parent / "fixtures"
BACKEND_URL = "http://backend.test"
BACKEND_PAYLOAD = {"ok": True, "items": [1, 2]}

SEARCH_API = {
    "paths": {
        "/search": {
            "post": {
                "operationId": "search",
                "parameters": [{"name": "dryRun", "in": "query"}],
                "requestBody": {"content": {"application/json": {"schema": {
                    "type": "object",
                    "properties": {
                        "on": {"type": "boolean"},
                        "tags": {"type": "array", "items": {"type": "string"}},
                        "price": {"type": "number"},
                        "note": {"type": "string"},
                        "x-trace-id": {"type": "string"},
                    },
                }}}},
            }
        },
        "/things/{id}": {
            "put": {
                "operationId": "replaceThing",
                "parameters": [{"name": "name", "in": "query"}],
                "requestBody": {"content": {"application/json": {"schema": {
                    "type": "object",
                    "required": ["name"],
                    "properties": {"name": {"type": "string"}},
                }}}},
            }
        },
    }
}


def _load_module(server_file, module_name, monkeypatch):
    spec = importlib.util.spec_from_file_location(module_name, server_file)
    module = importlib.util.module_from_spec(spec)
    monkeypatch.setitem(sys.modules, module_name, module)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def backend(monkeypatch):
    """Routes every httpx.AsyncClient to an in-memory backend and records the requests."""
    requests = []

    def handle(request):
        requests.append(request)
        return httpx.Response(200, json=BACKEND_PAYLOAD)

    real_client = httpx.AsyncClient
    transport = httpx.MockTransport(handle)
    monkeypatch.setattr(httpx, "AsyncClient", lambda *args, **kwargs: real_client(transport=transport))
    monkeypatch.setenv("BACKEND_URL", BACKEND_URL)
    return requests


@pytest.fixture
def items_server(tmp_path, monkeypatch):
    server_file = generate_mcp_server(FIXTURE_DIR / "items_api.json", tmp_path / "items")
    return _load_module(server_file, "generated_items_server", monkeypatch)


@pytest.fixture
def search_server(tmp_path, monkeypatch):
    server_file = tmp_path / "search_server.py"
    server_file.write_text(MCPGenerator(OpenAPIParser(SEARCH_API)).generate(), encoding="utf-8")
    return _load_module(server_file, "generated_search_server", monkeypatch)


def _list_tools(module):
    handler = module.server.request_handlers[types.ListToolsRequest]
    result = asyncio.run(handler(types.ListToolsRequest(method="tools/list")))
    return {t.name: t for t in result.root.tools}


def _call_tool(module, name, arguments):
    handler = module.server.request_handlers[types.CallToolRequest]
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )
    return asyncio.run(handler(request)).root


# --- tool registration ---
def test_lists_one_tool_per_operation(items_server):
    tools = _list_tools(items_server)
    assert list(tools) == ["listItems", "createItem", "put__items_{id}", "deleteItem"]


def test_input_schema_uses_original_names(items_server):
    schema = _list_tools(items_server)["createItem"].inputSchema
    assert list(schema["properties"]) == ["name", "quantity", "inStock", "metadata"]
    assert sorted(schema["required"]) == ["name", "quantity"]


def test_duplicate_name_keeps_the_last_entry(search_server):
    schema = _list_tools(search_server)["replaceThing"].inputSchema
    assert list(schema["properties"]) == ["name"]
    assert schema["required"] == ["name"]


# --- dispatch ---
def test_get_builds_query_and_sends_no_body(items_server, backend):
    result = _call_tool(items_server, "listItems", {"q": "x", "limit": ""})

    assert not result.isError
    [request] = backend
    assert request.method == "GET"
    assert str(request.url) == f"{BACKEND_URL}/items?q=x"
    assert request.content == b""
    assert "content-type" not in request.headers
    assert [c.text for c in result.content] == [json.dumps(BACKEND_PAYLOAD, indent=2)]


def test_post_sends_arguments_as_json(items_server, backend):
    result = _call_tool(items_server, "createItem", {"name": "pen", "quantity": 3, "inStock": False})

    assert not result.isError
    [request] = backend
    assert request.method == "POST"
    assert str(request.url) == f"{BACKEND_URL}/items"
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == {"name": "pen", "quantity": 3, "inStock": False}


def test_delete_without_arguments_is_bodyless(items_server, backend):
    result = _call_tool(items_server, "deleteItem", {})

    assert not result.isError
    [request] = backend
    assert request.method == "DELETE"
    assert request.url.path == "/items/{id}"
    assert request.content == b""


def test_missing_required_argument_is_an_error(items_server, backend):
    result = _call_tool(items_server, "createItem", {"name": "pen"})
    assert result.isError
    assert backend == []


# --- query string formatting ---
def test_query_values_are_formatted_for_the_backend(search_server, backend):
    arguments = {
        "dryRun": "1",
        "on": True,
        "tags": ["a", "b"],
        "price": 2.0,
        "note": "",
        "x-trace-id": "t-1",
    }
    result = _call_tool(search_server, "search", arguments)

    assert not result.isError
    [request] = backend
    assert request.method == "POST"
    assert list(request.url.params.multi_items()) == [
        ("dryRun", "1"),
        ("on", "true"),
        ("tags", "a,b"),
        ("price", "2"),
        ("x-trace-id", "t-1"),
    ]
    assert json.loads(request.content) == arguments


def test_false_and_empty_values_are_left_out_of_the_query(search_server, backend):
    result = _call_tool(search_server, "search", {"dryRun": "1", "on": False, "tags": []})

    assert not result.isError
    [request] = backend
    assert list(request.url.params.multi_items()) == [("dryRun", "1")]


@pytest.mark.parametrize("value, expected", [
    (True, "true"),
    (False, "false"),
    (["a", None, 1], "a,,1"),
    ([True, 2.5], "true,2.5"),
    (3.0, "3"),
    (7, "7"),
    ({"k": 1}, '{"k": 1}'),
    ("plain", "plain"),
])
def test_query_value(search_server, value, expected):
    assert search_server.query_value(value) == expected
