"""
Writes a generated MCP server project to disk.

The project is the fixed template tree plus ``src/server.py`` rendered by
:class:`~mcpscaffold.generator.MCPGenerator`. Nothing is rolled back when a
write fails part way through.
"""
import logging
import shutil
from pathlib import Path
from typing import Optional

from .errors import (
    OutputDirectoryCreationError,
    OutputDirectoryExistsError,
    ServerFileWriteError,
    SourceDirectoryCreationError,
    TemplatesCopyError,
    TemplatesDirectoryNotFoundError,
)
from .generator import MCPGenerator
from .parser import OpenAPIParser

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"
SERVER_FILE = Path("src") / "server.py"


def copy_templates(source: Path, destination: Path) -> None:
    """Copies every file and directory under ``source`` into ``destination``."""
    try:
        shutil.copytree(source, destination, dirs_exist_ok=True)
    except (OSError, shutil.Error) as e:
        logger.debug(f"Template copy failed: {e}")
        raise TemplatesCopyError(source, destination) from e


def write_server_file(output_dir: Path, code: str) -> Path:
    source_dir = output_dir / SERVER_FILE.parent
    try:
        source_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise SourceDirectoryCreationError(source_dir) from e

    server_file = output_dir / SERVER_FILE
    try:
        with open(server_file, "w", encoding="utf-8", newline="\n") as f:
            f.write(code)
    except OSError as e:
        raise ServerFileWriteError(server_file) from e
    return server_file


def generate_mcp_server(
    openapi_file: Path, output_dir: Path, templates_dir: Optional[Path] = None
) -> Path:
    """Generates an MCP server project from an OpenAPI description.

    Returns the path of the generated server module.
    """
    templates_dir = Path(templates_dir) if templates_dir else DEFAULT_TEMPLATES_DIR
    output_dir = Path(output_dir)

    if output_dir.exists():
        raise OutputDirectoryExistsError(output_dir)
    if not templates_dir.is_dir():
        raise TemplatesDirectoryNotFoundError(templates_dir)

    logger.info(f"Parsing OpenAPI specification from: {openapi_file}")
    parser = OpenAPIParser.from_file(openapi_file)
    code = MCPGenerator(parser).generate()

    try:
        output_dir.mkdir(parents=True)
    except OSError as e:
        raise OutputDirectoryCreationError(output_dir) from e

    logger.info(f"Copying templates from {templates_dir} to {output_dir}")
    copy_templates(templates_dir, output_dir)

    server_file = write_server_file(output_dir, code)
    logger.info(f"MCP server code written to {server_file}")
    return server_file
