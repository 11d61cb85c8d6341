"""
EN: Main package for mcpscaffold.
This package turns an OpenAPI description into a ready-to-run MCP server project.
It includes a parser that walks the description's operations, a generator that
emits one MCP tool per operation, a scaffolder that writes the project tree,
and a command-line interface (CLI) to orchestrate these processes.

RU: Основной пакет для mcpscaffold.
Этот пакет превращает описание OpenAPI в готовый к запуску проект MCP-сервера.
Он включает парсер, обходящий операции описания, генератор, создающий по одному
инструменту MCP на каждую операцию, модуль создания структуры проекта
и интерфейс командной строки (CLI) для управления этими процессами.
"""

__version__ = "1.0.0"
