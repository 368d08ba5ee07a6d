from __future__ import annotations
from pathlib import Path
from pydantic import BaseModel
from typing import Optional

from .type_helpers import RenderOptions

SETTINGS_PATH = Path.home() / ".mrp" / "settings.json"

class Settings(BaseModel):
    abbreviate: bool = False
    abbreviate_damage_type: bool = False
    show_no_miss: bool = True
    include_school: bool = True
    include_sb_points: bool = True
    cache_max_entries: Optional[int] = None  # None = unbounded
    log_level: str = "info"  # debug | info | warning | error
    default_content_dir: Optional[str] = None

    def render_options(self) -> RenderOptions:
        return RenderOptions(
            abbreviate=self.abbreviate,
            abbreviate_damage_type=self.abbreviate_damage_type,
            show_no_miss=self.show_no_miss,
            include_school=self.include_school,
            include_sb_points=self.include_sb_points,
        )

def load_settings(path: Optional[Path] = None) -> Settings:
    path = path or SETTINGS_PATH
    if path.exists():
        return Settings.model_validate_json(path.read_text(encoding="utf-8"))
    path.parent.mkdir(parents=True, exist_ok=True)
    s = Settings()
    path.write_text(s.model_dump_json(indent=2), encoding="utf-8")
    return s

def save_settings(s: Settings, path: Optional[Path] = None) -> None:
    path = path or SETTINGS_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(s.model_dump_json(indent=2), encoding="utf-8")
