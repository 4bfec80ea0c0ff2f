"""Configuration settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _optional_path(name: str) -> Optional[Path]:
    value = os.getenv(name, "").strip()
    return Path(value) if value else None


@dataclass
class Settings:
    """Defaults for the command line, overridable with ``TIMEKIT_*`` variables."""

    template_path: Optional[Path] = field(default_factory=lambda: _optional_path("TIMEKIT_TEMPLATE_PATH"))
    output_dir: Path = field(default_factory=lambda: Path(os.getenv("TIMEKIT_OUTPUT_DIR", "out")))
    random_state: int = field(default_factory=lambda: int(os.getenv("TIMEKIT_RANDOM_STATE", "42")))
    mode: str = field(default_factory=lambda: os.getenv("TIMEKIT_MODE", "fast"))

    def validate(self) -> None:
        """Validate settings that the pipeline would otherwise reject late."""
        if self.mode not in {"robust", "fast"}:
            raise ValueError(f"TIMEKIT_MODE must be 'robust' or 'fast', got {self.mode!r}")
        if self.template_path is not None and not self.template_path.exists():
            raise ValueError(f"TIMEKIT_TEMPLATE_PATH does not exist: {self.template_path}")
