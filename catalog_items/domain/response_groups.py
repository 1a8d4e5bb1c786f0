"""Item response groups.

A response group selects which sections of a product are loaded and
returned. Callers pass response groups as strings (for example
``"ItemInfo,ItemAssets"``); they are parsed into ``ItemResponseGroup`` flags.
"""

import re
from enum import IntFlag


class ItemResponseGroup(IntFlag):
    """Sections of a catalog product that can be requested."""

    NONE = 0
    ITEM_INFO = 1
    ITEM_ASSETS = 1 << 1
    ITEM_PROPERTIES = 1 << 2
    ITEM_ASSOCIATIONS = 1 << 3
    ITEM_EDITORIAL_REVIEWS = 1 << 4
    VARIATIONS = 1 << 5
    SEO = 1 << 6
    LINKS = 1 << 7
    INVENTORY = 1 << 8
    OUTLINES = 1 << 9
    REFERENCED_ASSOCIATIONS = 1 << 10

    ITEM_SMALL = ITEM_INFO | ITEM_ASSETS | ITEM_EDITORIAL_REVIEWS | INVENTORY | SEO | OUTLINES
    ITEM_MEDIUM = ITEM_SMALL | ITEM_PROPERTIES | ITEM_ASSOCIATIONS
    ITEM_LARGE = ITEM_MEDIUM | VARIATIONS | LINKS | REFERENCED_ASSOCIATIONS


# Single-bit members in declaration order, used for canonical names
_ATOMIC_FLAGS = [
    member
    for member in ItemResponseGroup.__members__.values()
    if member.value and member.value & (member.value - 1) == 0
]

# "ItemInfo", "item_info" and "ITEMINFO" all resolve to the same member
_FLAGS_BY_NAME = {
    name.replace("_", "").lower(): member
    for name, member in ItemResponseGroup.__members__.items()
}

_SEPARATORS = re.compile(r"[,;|\s]+")


def _display_name(flag: ItemResponseGroup) -> str:
    return "".join(part.capitalize() for part in flag.name.split("_"))


def parse(
    value: str | int | ItemResponseGroup | None,
    default: ItemResponseGroup = ItemResponseGroup.ITEM_LARGE,
) -> ItemResponseGroup:
    """Parse a response group.

    Args:
        value: Comma separated flag names, an int or a flag value.
        default: Result for blank or unrecognised input.

    Returns:
        Parsed flags.
    """
    if value is None:
        return default
    if isinstance(value, int):
        return ItemResponseGroup(value)

    result = ItemResponseGroup.NONE
    recognised = False
    for token in _SEPARATORS.split(value.strip()):
        member = _FLAGS_BY_NAME.get(token.replace("_", "").lower())
        if member is not None:
            result |= member
            recognised = True

    return result if recognised else default


def has_flag(
    response_group: str | int | ItemResponseGroup | None,
    flag: ItemResponseGroup,
) -> bool:
    """Check whether a response group contains every bit of ``flag``."""
    return parse(response_group) & flag == flag


def to_string(response_group: str | int | ItemResponseGroup | None) -> str:
    """Render a response group as canonical comma separated names.

    Equivalent inputs ("itemassets, ItemInfo" and "ItemInfo,ItemAssets")
    render identically.
    """
    flags = parse(response_group)
    if not flags:
        return _display_name(ItemResponseGroup.NONE)
    return ",".join(_display_name(flag) for flag in _ATOMIC_FLAGS if flag in flags)
