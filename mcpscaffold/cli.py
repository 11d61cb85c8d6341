import logging
import re
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .errors import ScaffoldError
from .scaffold import generate_mcp_server

logger = logging.getLogger(__name__)

VERSION_STRING = f"mcpscaffold v{__version__}"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format='%(levelname)s: %(message)s')


@click.group()
def main():
    """mcpscaffold - OpenAPI to MCP Server Project Generator"""
    pass

@main.command()
@click.option(
    "-f",
    "--file",
    "openapi_file",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the OpenAPI JSON file (YAML is accepted for .yaml/.yml).",
)
@click.option(
    "-o",
    "--output",
    "output_dir",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Path to write the output directory. Must not exist yet.",
)
@click.option(
    "--templates-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="MCPSCAFFOLD_TEMPLATES_DIR",
    default=None,
    help="Project template tree to copy. Defaults to the templates bundled with mcpscaffold.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def generate(openapi_file: Path, output_dir: Path, templates_dir: Optional[Path], verbose: bool):
    """Generates an MCP server project from an OpenAPI specification."""
    _configure_logging(verbose)

    try:
        generate_mcp_server(openapi_file, output_dir, templates_dir)
    except ScaffoldError as e:
        logger.error(str(e))
        sys.exit(1)

    click.echo(f"Successfully generated MCP server code in: {output_dir}")


@main.command()
@click.option(
    "--server-file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to the generated MCP server Python file to check.",
)
def check(server_file: Path):
    """Checks the generated server code for basic validity."""
    _configure_logging(False)
    logger.info(f"Checking generated server file: {server_file}")
    try:
        code = server_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error reading server file {server_file}: {e}")
        sys.exit(1)

    try:
        compile(code, str(server_file), "exec")
        logger.info("Code compilation successful.")
    except SyntaxError as e:
        logger.error(f"Syntax error in generated code: {e}")
        sys.exit(1)

    checks = {
        "Server object": r"server\s*=\s*Server\(",
        "Backend call helper": r"async\s+def\s+call_backend\(",
        "MCP tool registration": r"@tool\(",
        "Main function definition": r"async\s+def\s+main\(\)",
        "Stdio transport": r"stdio_server\(\)",
    }

    all_checks_passed = True
    for check_name, pattern in checks.items():
        if re.search(pattern, code):
            logger.info(f"Check passed: Found {check_name}.")
        else:
            logger.warning(f"Check failed: Did not find {check_name} (pattern: {pattern}).")
            all_checks_passed = False

    if all_checks_passed:
        logger.info("All basic checks passed.")
    else:
        # Heuristic only: a server with zero operations has no tool registrations.
        logger.warning("Some basic checks did not pass. Review the generated code.")

@main.command()
def version():
    """Displays the version of mcpscaffold."""
    click.echo(VERSION_STRING)

if __name__ == "__main__":
    main()
