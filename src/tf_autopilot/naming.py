"""Human-readable, collision-free filenames for persisted artifacts.

Allocation checks the directory and returns the first unused index. The check
and the later write are separate steps, so two concurrent callers can be handed
the same path; ``ArtifactStore`` writes with exclusive create to catch that.
"""

from __future__ import annotations

import re
from pathlib import Path

from tf_autopilot.errors import AllocationError, AllocationFailureKind

MAX_WORDS = 5
MAX_ATTEMPTS = 10_000
FALLBACK_BASE_NAME = "generated"

_DISALLOWED = re.compile(r"[^a-zA-Z0-9_]")


def derive_base_name(free_text: str) -> str:
    """Join the first five words with underscores, keep ``[a-z0-9_]`` only."""
    words = free_text.split()[:MAX_WORDS]
    base = _DISALLOWED.sub("", "_".join(words)).lower()
    return base if base.strip("_") else FALLBACK_BASE_NAME


def build_filename(free_text: str, tag: str, index: int, extension: str) -> str:
    return f"{tag}_{derive_base_name(free_text)}_{index}{extension}"


def next_available_path(
    directory: str | Path,
    free_text: str,
    tag: str,
    extension: str,
    start: int = 1,
) -> tuple[Path, int]:
    """Find the first ``<tag>_<base>_<n><extension>`` that does not exist yet.

    Args:
        directory: Output directory to search.
        free_text: Text the base name is derived from.
        tag: Provider tag prefixed to the base name.
        extension: File extension including the leading dot.
        start: First index to try.

    Returns:
        The free path and its index.

    Raises:
        ValueError: If ``directory``, ``tag`` or ``extension`` is empty.
        AllocationError: If no index up to ``MAX_ATTEMPTS`` is free.
    """
    if directory is None or not str(directory).strip():
        raise ValueError("directory cannot be empty")
    if not tag:
        raise ValueError("tag cannot be empty")
    if not extension:
        raise ValueError("extension cannot be empty")

    directory = Path(directory)
    for index in range(start, MAX_ATTEMPTS + 1):
        candidate = directory / build_filename(free_text, tag, index, extension)
        if not candidate.exists():
            return candidate, index

    raise AllocationError(
        AllocationFailureKind.EXHAUSTED,
        f"failed to find available filename after {MAX_ATTEMPTS} attempts",
    )
