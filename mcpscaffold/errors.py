from pathlib import Path
from typing import Optional


class ScaffoldError(Exception):
    """Base class for errors that abort a scaffolding run."""

    pass


class InputError(ScaffoldError):
    """The OpenAPI description could not be loaded."""

    pass


class OutputError(ScaffoldError):
    """The output location could not be prepared or written."""

    pass


class ConfigurationError(ScaffoldError):
    """The environment the tool runs in is misconfigured."""

    pass


class OpenAPIFileReadError(InputError):
    def __init__(self, path: Path, reason: Optional[str] = None):
        self.path = path
        message = f"Failed to read OpenAPI file: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class OpenAPIParseError(InputError):
    def __init__(self, path: Path, reason: Optional[str] = None):
        self.path = path
        message = f"Failed to parse OpenAPI spec {path} as JSON/YAML"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class OutputDirectoryExistsError(OutputError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Output directory already exists: {path}")


class OutputDirectoryCreationError(OutputError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Failed to create output directory: {path}")


class TemplatesCopyError(OutputError):
    def __init__(self, source: Path, destination: Path):
        self.source = source
        self.destination = destination
        super().__init__(f"Failed to copy templates directory {source} to {destination}")


class SourceDirectoryCreationError(OutputError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Failed to create src directory in output: {path}")


class ServerFileWriteError(OutputError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Failed to write generated server file: {path}")


class TemplatesDirectoryNotFoundError(ConfigurationError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Templates directory not found: {path}")
