from pathlib import Path
from typing import Union

import structlog

from ad_repl_reporter.exceptions import OutputPathError

logger = structlog.get_logger(__name__)


def ensure_path(log_file_path: Union[str, Path]) -> Path:
    """
    Make sure the report directory exists, creating it and its parents if needed.

    Idempotent: calling it on a directory that already exists is a no-op.

    Raises:
        OutputPathError: If the path is empty, names an existing file, or
            cannot be created (permission denied, invalid path).
    """
    if not str(log_file_path).strip():
        raise OutputPathError("Report directory path is empty")

    path = Path(log_file_path)
    if path.is_dir():
        logger.debug("Report directory exists", path=str(path))
        return path
    if path.exists():
        raise OutputPathError(
            "Report path exists but is not a directory", path=str(path)
        )

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputPathError(
            f"Cannot create report directory: {e.strerror or e}",
            path=str(path),
            cause=e,
        ) from e

    logger.info("Created report directory", path=str(path))
    return path
