"""Helpers for loading `.env` files for the CLI and the API app."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Union

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
_LOADED = False


def load_env(*, override: bool = False, extra_paths: Iterable[PathLike] | None = None) -> bool:
    """Load environment variables from `.env` files if they exist.

    Args:
        override: When ``True`` existing variables may be replaced.
        extra_paths: Optional iterable of additional files to load before the
            default search locations.

    Returns:
        ``True`` if any environment file was successfully loaded.
    """

    global _LOADED

    if _LOADED and not override and extra_paths is None:
        return True

    loaded_any = False
    loaded_paths: set[Path] = set()

    candidates: list[Path] = []
    if extra_paths is not None:
        candidates.extend(Path(raw_path).expanduser() for raw_path in extra_paths)

    found = find_dotenv(usecwd=True)
    if found:
        candidates.append(Path(found))

    candidates.append(Path(__file__).resolve().parent.parent / ".env")

    for path in candidates:
        if not path.exists():
            continue
        resolved = path.resolve()
        if resolved in loaded_paths:
            continue
        loaded_paths.add(resolved)
        logger.debug("Loading environment from %s", resolved)
        loaded_any = load_dotenv(resolved, override=override) or loaded_any

    if not override:
        _LOADED = True

    return loaded_any
