"""
Error taxonomy for the analysis pipeline.
"""
from typing import Any, Dict, Optional


class CodeGraphError(Exception):
    """Base class for all repokg errors."""


class ParseError(CodeGraphError):
    """A file could not be parsed as valid syntax for its language."""

    def __init__(self, file_path: str, message: str = "syntax error", line: Optional[int] = None):
        self.file_path = file_path
        self.line = line
        location = f"{file_path}:{line}" if line is not None else file_path
        super().__init__(f"Failed to parse {location}: {message}")


class UnsupportedLanguageError(CodeGraphError):
    """No analyzer is registered for the requested language."""

    def __init__(self, language: str):
        self.language = language
        super().__init__(f"Unsupported language: {language}")


class AcquisitionError(CodeGraphError):
    """The repository working tree could not be acquired."""


class PersistenceError(CodeGraphError):
    """A write or read against the graph store failed."""

    def __init__(self, message: str, query: Optional[str] = None,
                 parameters: Optional[Dict[str, Any]] = None):
        self.query = query
        self.parameters = parameters or {}
        super().__init__(message)


class ValidationError(CodeGraphError):
    """Caller input was malformed."""


class NotFoundError(CodeGraphError):
    """A referenced job, entity or graph does not exist."""


class JobStateError(CodeGraphError):
    """An analysis job was asked to move to a state it cannot reach."""
