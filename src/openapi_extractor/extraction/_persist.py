"""Write schema documents to disk."""

from pathlib import Path

from openapi_extractor.exceptions import PersistenceError
from openapi_extractor.utils import indent_json

FILE_MODE = 0o600


def write_json_file(directory: Path, filename: str, raw: bytes) -> Path:
    """Pretty-print ``raw`` with tab indentation into ``directory/filename``.

    Parent directories are created and an existing file is overwritten.
    The file is left with mode 0600.

    Args:
        directory: Target directory.
        filename: File name within ``directory``.
        raw: JSON payload exactly as served.

    Returns:
        The written path.

    Raises:
        PersistenceError: If the directory cannot be created, the payload is
            not valid JSON, or the file cannot be written.
    """
    path = directory / filename

    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        msg = f"Failed to create directory {directory}: {e}"
        raise PersistenceError(msg, path=directory, operation="mkdir", cause=e) from e

    try:
        formatted = indent_json(raw)
    except ValueError as e:
        msg = f"Failed to format {path}: {e}"
        raise PersistenceError(msg, path=path, operation="format", cause=e) from e

    try:
        _ = path.write_bytes(formatted)
        path.chmod(FILE_MODE)
    except OSError as e:
        msg = f"Failed to write {path}: {e}"
        raise PersistenceError(msg, path=path, operation="write", cause=e) from e

    return path
