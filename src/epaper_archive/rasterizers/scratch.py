"""Scratch space for intermediate rasterization files."""

import logging
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SCRATCH_DIR = Path(tempfile.gettempdir()) / "epaper-archive"


@contextmanager
def scratch_space(root: Path | None = None) -> Iterator[Path]:
    """Create a private working directory removed on exit.

    The directory is removed on both success and failure. Removal
    failures are logged and do not replace the operation's own outcome.

    Args:
        root: Parent directory for scratch spaces (default: system temp)

    Yields:
        Path to an empty directory owned by this operation
    """
    root = root or DEFAULT_SCRATCH_DIR
    root.mkdir(parents=True, exist_ok=True)
    workdir = Path(tempfile.mkdtemp(prefix="edition-", dir=root))
    try:
        yield workdir
    finally:
        try:
            shutil.rmtree(workdir)
        except OSError as e:
            logger.error(f"Failed to remove scratch directory {workdir}: {e}")


def sweep_scratch(root: Path | None = None) -> int:
    """Remove everything under the scratch root.

    Not safe while a conversion is running: it deletes other operations'
    working directories along with stale leftovers.

    Returns:
        Number of entries removed
    """
    root = root or DEFAULT_SCRATCH_DIR
    if not root.exists():
        return 0

    removed = 0
    for entry in root.iterdir():
        try:
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
            removed += 1
        except OSError as e:
            logger.error(f"Failed to remove {entry}: {e}")

    logger.info(f"Swept {removed} entries from {root}")
    return removed
