"""
Local file helpers - collect a project directory and checksum its files.

MD5 is what the server compares against for checksum-based deduplication.
"""
import asyncio
import hashlib
import logging
from pathlib import Path
from typing import Dict, List

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536  # 64KB


def collect_files(folder: Path) -> List[str]:
    """
    Collect every file below a folder.

    Args:
        folder: Root folder to scan

    Returns:
        Sorted relative POSIX paths
    """
    files = []
    for item in folder.rglob("*"):
        if item.is_file():
            files.append(item.relative_to(folder).as_posix())
    return sorted(files)


async def md5_file(path: Path) -> str:
    """Calculate the hex MD5 of a file without blocking the event loop."""
    def _hash_file():
        hasher = hashlib.md5()
        with open(path, 'rb') as f:
            while True:
                chunk = f.read(CHUNK_SIZE)
                if not chunk:
                    break
                hasher.update(chunk)
        return hasher.hexdigest()

    return await asyncio.to_thread(_hash_file)


async def compute_checksums(folder: Path) -> Dict[str, str]:
    """
    Checksum every file of a project directory concurrently.

    Returns:
        Relative path -> hex MD5
    """
    paths = collect_files(folder)
    digests = await asyncio.gather(*(md5_file(folder / p) for p in paths))
    logger.debug("Computed checksums for %d files in %s", len(paths), folder)
    return dict(zip(paths, digests))
