"""Write a ``{relative_path: value}`` view map to a directory as JSON files."""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Mapping, Optional

from loguru import logger


def safe_relative_path(relative_path: str) -> PurePosixPath:
    """Validate a view path.

    Raises:
        ValueError: If the path is empty, absolute, or escapes the output directory
    """
    if not relative_path or not relative_path.strip():
        raise ValueError("View path must be a non-empty relative path")
    path = PurePosixPath(relative_path)
    if path.is_absolute() or relative_path.startswith("\\") or ".." in path.parts:
        raise ValueError(f"Unsafe view path: {relative_path!r}")
    return path


class JsonViewWriter:
    """Persist views under ``output_dir``; each file is written independently."""

    def __init__(
        self,
        output_dir: str | Path,
        *,
        max_workers: int = 8,
        indent: Optional[int] = 2,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.max_workers = max(1, max_workers)
        self.indent = indent

    def write_view(self, relative_path: str, value: Any) -> Path:
        target = self.output_dir.joinpath(*safe_relative_path(relative_path).parts)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps(value, indent=self.indent, ensure_ascii=False) + "\n", encoding="utf-8"
        )
        return target

    def write_all(self, views: Mapping[str, Any]) -> List[Path]:
        """Write every view and return the written paths in view order.

        All paths are validated before anything is written. The first write error propagates.
        """
        for relative_path in views:
            safe_relative_path(relative_path)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        written: Dict[str, Path] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_map = {
                executor.submit(self.write_view, relative_path, value): relative_path
                for relative_path, value in views.items()
            }
            for future in as_completed(future_map):
                written[future_map[future]] = future.result()

        logger.info("Wrote {} views to {}", len(written), self.output_dir)
        return [written[relative_path] for relative_path in views]
