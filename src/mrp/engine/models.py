from __future__ import annotations
from typing import Dict, List, Literal, Optional, Union, get_args
from pydantic import BaseModel, ConfigDict, Field, field_validator

School = Literal[
    "Black Magic", "White Magic", "Summoning", "Combat", "Support", "Celerity",
    "Dragoon", "Monk", "Thief", "Knight", "Samurai", "Ninja", "Bard", "Dancer",
    "Machinist", "Darkness", "Sharpshooter", "Witch", "Heavy", "Spellblade",
    "Special", "?",
]
Element = Literal["Fire", "Ice", "Lightning", "Earth", "Wind", "Water", "Holy", "Dark", "Poison", "NE"]
SkillType = Literal["PHY", "WHT", "BLK", "BLU", "SUM", "NAT", "NIN", "?"]
Stat = Literal["ATK", "DEF", "MAG", "RES", "MND", "SPD", "ACC", "EVA"]

SCHOOLS: tuple[str, ...] = get_args(School)
ELEMENTS: tuple[str, ...] = get_args(Element)
# Canonical element ordering; the merge and formatter tables depend on it
ALL_ELEMENTS: tuple[str, ...] = ("Fire", "Ice", "Lightning", "Earth", "Wind", "Water", "Holy", "Dark", "Poison")


def is_element(s: str) -> bool:
    return s in ELEMENTS


def is_school(s: str) -> bool:
    return s in SCHOOLS


def is_non_elemental(element: List[str]) -> bool:
    return len(element) == 1 and element[0] == "NE"


def lookup_element(s: str) -> Optional[str]:
    s = s.strip().lower()
    aliases = {"non-elemental": "NE", "ne": "NE", "lgt": "Lightning", "bio": "Poison"}
    if s in aliases:
        return aliases[s]
    for e in ELEMENTS:
        if e.lower() == s:
            return e
    return None


def lookup_school(s: str) -> Optional[str]:
    s = s.strip().lower()
    for sch in SCHOOLS:
        if sch.lower() == s:
            return sch
    return None


class StatusPlaceholders(BaseModel):
    model_config = ConfigDict(frozen=True)

    x_value: Optional[Union[float, List[float]]] = None
    x_value_is_uncertain: bool = False
    element: Optional[Element] = None


class StatusRecord(BaseModel):
    """One row of the caller's status table."""
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    effects: Optional[str] = None
    placeholders: Optional[StatusPlaceholders] = None


StatusTable = Dict[str, StatusRecord]


class AbilityMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    effects: str = ""
    school: School = "?"
    type: SkillType = "?"
    element: List[Element] = Field(default_factory=list)
    rarity: Optional[int] = None
    sb_points: Optional[int] = None

    @field_validator("element", mode="before")
    @classmethod
    def _coerce_element(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v
