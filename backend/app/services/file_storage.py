"""Customer uploads (photo-cake images, printed cards) on local disk."""
import asyncio
from pathlib import Path
from typing import List, Optional, Sequence

from backend.app.core.logging import get_logger
from backend.app.core.settings import get_settings

logger = get_logger(__name__)

PENDING_SUBDIR = "pending"
ORDERS_SUBDIR = "orders"


def upload_root(root: Optional[str] = None) -> Path:
    return Path(root or get_settings().UPLOAD_DIR).resolve()


def _pending_source(root: Path, relative: str) -> Optional[Path]:
    """Absolute path of a pending upload, or None if `relative` is not inside pending/."""
    relative = relative.lstrip("/")
    if not relative.startswith(PENDING_SUBDIR + "/"):
        return None
    source = (root / relative).resolve()
    if not source.is_relative_to(root / PENDING_SUBDIR):
        return None
    return source


def promote_uploads(root: Path, uploads: Sequence[str], order_number: str) -> List[str]:
    """
    Move pending uploads into orders/<order_number>/ and return the new
    relative paths in the same order. Paths that are already permanent, fall
    outside pending/ or no longer exist are returned unchanged.
    """
    target_dir = root / ORDERS_SUBDIR / order_number
    promoted = []
    for relative in uploads:
        source = _pending_source(root, relative)
        if source is None or not source.is_file():
            if source is not None:
                logger.warning("Pending upload missing", path=relative, order_number=order_number)
            promoted.append(relative)
            continue
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / source.name
        source.replace(target)
        promoted.append(target.relative_to(root).as_posix())
    return promoted


async def promote_uploads_async(root: Path, uploads: Sequence[str], order_number: str) -> List[str]:
    return await asyncio.to_thread(promote_uploads, root, uploads, order_number)
