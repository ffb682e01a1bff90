"""Find script files by ID."""
from pathlib import Path
from typing import Optional

from infrastructure.script.loader_registry import SUPPORTED_SUFFIXES


class ScriptFileFinder:
    """Search script files under the given base directory."""

    def __init__(self, base_dir: Path):
        self.base_dir = base_dir

    def find_by_id(self, script_id: str) -> Optional[Path]:
        """
        Find a script file by script ID.

        Args:
            script_id: Script ID (e.g., "login" or "auth/login")

        Returns:
            The Path if found, otherwise None.
        """
        candidates: list[Path] = []

        # .json wins over the YAML variants for the same id
        for ext in SUPPORTED_SUFFIXES:
            filename = f"{script_id}{ext}"
            for file_path in self.base_dir.rglob(filename):
                if file_path.is_file():
                    candidates.append(file_path)

        if not candidates:
            return None

        candidates.sort(key=lambda path: (SUPPORTED_SUFFIXES.index(path.suffix), str(path)))
        return candidates[0]
