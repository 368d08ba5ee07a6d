from __future__ import annotations
from typing import Dict, List, Literal, Optional, Sequence, Tuple, Union
from pydantic import BaseModel, ConfigDict

from .models import AbilityMetadata, ALL_ELEMENTS, is_element, is_non_elemental, is_school
from .textutil import AND_OR_LIST, arrayify


class RenderOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    abbreviate: bool = False
    abbreviate_damage_type: bool = False
    show_no_miss: bool = True
    include_school: bool = True
    include_sb_points: bool = True

    # Context for resolving references that only make sense for a given command set
    prereq_status: Optional[str] = None
    burst_commands: Tuple[str, ...] = ()
    synchro_commands: Tuple[str, ...] = ()

    def cache_key(self) -> str:
        return self.model_dump_json()


MrPDamageType = Literal["phys", "white", "magic", "?"]

_DAMAGE_TYPES: Dict[str, MrPDamageType] = {
    "PHY": "phys", "WHT": "white", "BLK": "magic", "BLU": "magic", "SUM": "magic", "NAT": "magic",
}


def get_damage_type(ability: AbilityMetadata) -> MrPDamageType:
    return _DAMAGE_TYPES.get(ability.type, "?")


def damage_type_abbreviation(damage_type: MrPDamageType) -> str:
    return damage_type[0]


_ELEMENT_SHORT_NAME = {"lightning": "lgt", "ne": "non", "poison": "bio"}
_ELEMENT_ABBREVIATION = {"water": "wa", "wind": "wi", "poison": "b"}
_SCHOOL_SHORT_NAME = {"Black Magic": "B.Mag", "White Magic": "W.Mag", "Summoning": "Summon"}
_SHORT_ALIASES = {"jump": "jump", "physical": "phys", "any": "any", "non-elemental": "non-elem"}

ALL_ELEMENTS_SHORT_NAME = "/".join(_ELEMENT_SHORT_NAME.get(e.lower(), e.lower()) for e in ALL_ELEMENTS)
PRISM_ELEMENTS_SHORT_NAME = ALL_ELEMENTS_SHORT_NAME.replace("/", "+")
PRISM_ELEMENTS_ABBREVIATION = "+".join(_ELEMENT_ABBREVIATION.get(e.lower(), e[0].lower()) for e in ALL_ELEMENTS)


def get_element_short_name(element: Union[str, Sequence[str]], join_string: str = "+") -> str:
    text = join_string.join(_ELEMENT_SHORT_NAME.get(e.lower(), e.lower()) for e in arrayify(element))
    full = ALL_ELEMENTS_SHORT_NAME if join_string == "/" else PRISM_ELEMENTS_SHORT_NAME
    return text.replace(full, "prism")


def get_element_abbreviation(element: Union[str, Sequence[str]], join_string: str = "+") -> str:
    text = join_string.join(_ELEMENT_ABBREVIATION.get(e.lower(), e[0].lower()) for e in arrayify(element))
    return text.replace(PRISM_ELEMENTS_ABBREVIATION, "prism")


def get_school_short_name(school: str) -> str:
    return _SCHOOL_SHORT_NAME.get(school, school)


def get_short_name(s: str) -> str:
    if is_element(s):
        return get_element_short_name(s)
    if is_school(s):
        return get_school_short_name(s)
    return _SHORT_ALIASES.get(s.lower(), s)


def append_element(element: Optional[List[str]], f) -> str:
    if element and not is_non_elemental(element):
        return " " + f(element)
    return ""


def format_school_or_ability_list(items: Union[str, Sequence[str]]) -> str:
    if isinstance(items, str):
        items = AND_OR_LIST.split(items)
    items = list(items)
    # "non" by itself reads badly
    if len(items) == 1 and items[0] == "NE":
        return "non-elem"
    return "/".join(get_short_name(i) for i in items).replace(ALL_ELEMENTS_SHORT_NAME, "elem")


WHO_TEXT: Dict[str, str] = {
    "self": "self",
    "target": "target",
    "enemies": "AoE",
    "sameRow": "same row",
    "frontRow": "front row",
    "backRow": "back row",
    "party": "party",
    "lowestHpAlly": "ally",
    "allyWithoutStatus": "ally",
    "allyWithNegativeStatus": "ally",
    "allyWithKO": "ally",
    "ally": "ally",
    "namedCharacter": "specific character",
    "summonCharacter": "guardian",
}


def format_who(who: Union[str, Sequence[str]]) -> str:
    return "/".join(WHO_TEXT[w] for w in arrayify(who))


def append_per_uses(per_uses: Optional[int]) -> str:
    return f" per {per_uses} uses" if per_uses else ""
