from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple
import json
import yaml
from pydantic import TypeAdapter
from .models import AbilityMetadata, StatusRecord, StatusTable

AbilityAdapter = TypeAdapter(AbilityMetadata)
StatusAdapter = TypeAdapter(StatusRecord)

def _load_file(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in [".yaml", ".yml"]:
        return yaml.safe_load(text) or {}
    return json.loads(text)

def _iter_files(root: Path, exts: Tuple[str,...]=(".json",".yaml",".yml")) -> Iterable[Path]:
    if not root.exists():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file() and p.suffix.lower() in exts)

def _records(data: Any) -> List[dict]:
    # A file holds one record or a list of them
    if isinstance(data, list):
        return data
    return [data] if data else []

@dataclass
class ContentIndex:
    abilities: Dict[int, AbilityMetadata]
    abilities_by_name: Dict[str, AbilityMetadata]
    statuses: Dict[int, StatusRecord]
    status_table: StatusTable  # by name

    def get_ability(self, aid: int) -> AbilityMetadata:
        return self.abilities[aid]

    def find_ability(self, name: str) -> Optional[AbilityMetadata]:
        return self.abilities_by_name.get(name)

    def get_status(self, sid: int) -> StatusRecord:
        return self.statuses[sid]

class _Builder:
    def __init__(self) -> None:
        self.abilities: Dict[int, AbilityMetadata] = {}
        self.statuses: Dict[int, StatusRecord] = {}

    def add_ability(self, data: dict, source: Path) -> None:
        ability = AbilityAdapter.validate_python(data)
        if ability.id in self.abilities:
            raise RuntimeError(f"Duplicate ability id {ability.id} in {source}")
        self.abilities[ability.id] = ability

    def add_status(self, data: dict, source: Path) -> None:
        status = StatusAdapter.validate_python(data)
        if status.id in self.statuses:
            raise RuntimeError(f"Duplicate status id {status.id} in {source}")
        self.statuses[status.id] = status

    def build(self) -> ContentIndex:
        return ContentIndex(
            abilities=self.abilities,
            abilities_by_name={a.name: a for a in self.abilities.values()},
            statuses=self.statuses,
            status_table={s.name: s for s in self.statuses.values()},
        )

def load_content(path: Path) -> ContentIndex:
    """
    Load abilities and statuses either from a directory with abilities/ and
    statuses/ subdirectories, or from a single file with abilities: and
    statuses: keys.
    """
    builder = _Builder()
    if path.is_file():
        data = _load_file(path) or {}
        for rec in data.get("abilities", []):
            builder.add_ability(rec, path)
        for rec in data.get("statuses", []):
            builder.add_status(rec, path)
        return builder.build()

    for fp in _iter_files(path / "abilities"):
        for rec in _records(_load_file(fp)):
            builder.add_ability(rec, fp)

    for fp in _iter_files(path / "statuses"):
        for rec in _records(_load_file(fp)):
            builder.add_status(rec, fp)

    return builder.build()
