"""Settings loader — YAML serialization and deserialization for Settings.

Provides round-trip save/load so import and store settings can be reviewed,
version-controlled, and edited as human-readable YAML configuration files.
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml


MAX_DELETE_BATCH = 400

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ScorecardSettings:
    """Markers used to find the channel section of a marketing scorecard."""
    section_start: str = "channel performance"
    section_end: str = "brand & reputation"
    max_section_rows: int = 7

    def to_dict(self) -> dict:
        return {
            "section_start": self.section_start,
            "section_end": self.section_end,
            "max_section_rows": self.max_section_rows,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ScorecardSettings":
        defaults = cls()
        section_start = d.get("section_start", defaults.section_start)
        section_end = d.get("section_end", defaults.section_end)
        max_rows = d.get("max_section_rows", defaults.max_section_rows)
        for key, value in [("section_start", section_start),
                           ("section_end", section_end)]:
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"Field 'scorecard.{key}' must be a non-empty string")
        if isinstance(max_rows, bool) or not isinstance(max_rows, int) or max_rows < 1:
            raise ValueError("Field 'scorecard.max_section_rows' must be a positive integer")
        return cls(
            section_start=section_start.strip().lower(),
            section_end=section_end.strip().lower(),
            max_section_rows=max_rows,
        )


@dataclass
class Settings:
    """Top-level settings for the importer, store, and CLI."""
    store_path: str = "leads.json"
    delete_batch_size: int = MAX_DELETE_BATCH
    log_level: str = "WARNING"
    scorecard: ScorecardSettings = field(default_factory=ScorecardSettings)

    def to_dict(self) -> dict:
        return {
            "store_path": self.store_path,
            "delete_batch_size": self.delete_batch_size,
            "log_level": self.log_level,
            "scorecard": self.scorecard.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict | None) -> "Settings":
        d = d or {}
        if not isinstance(d, dict):
            raise ValueError("Settings file must contain a mapping")
        defaults = cls()

        store_path = d.get("store_path", defaults.store_path)
        if not isinstance(store_path, str) or not store_path:
            raise ValueError("Field 'store_path' must be a non-empty string")

        batch = d.get("delete_batch_size", defaults.delete_batch_size)
        if (isinstance(batch, bool) or not isinstance(batch, int)
                or not 1 <= batch <= MAX_DELETE_BATCH):
            raise ValueError(
                f"Field 'delete_batch_size' must be an integer between 1 and {MAX_DELETE_BATCH}"
            )

        log_level = str(d.get("log_level", defaults.log_level)).upper()
        if log_level not in LOG_LEVELS:
            raise ValueError(
                f"Field 'log_level' must be one of: {', '.join(LOG_LEVELS)}"
            )

        scorecard = d.get("scorecard") or {}
        if not isinstance(scorecard, dict):
            raise ValueError("Field 'scorecard' must be a mapping")

        return cls(
            store_path=store_path,
            delete_batch_size=batch,
            log_level=log_level,
            scorecard=ScorecardSettings.from_dict(scorecard),
        )


def save_settings(settings: Settings, path: str | Path) -> None:
    """Serialize Settings to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(settings.to_dict(), f, default_flow_style=False,
                  sort_keys=False, allow_unicode=True)


def load_settings(path: str | Path | None = None) -> Settings:
    """Deserialize Settings from a YAML file (defaults when *path* is None)."""
    if path is None:
        return Settings()
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f)
    return Settings.from_dict(data)
