from __future__ import annotations

from enum import Enum

from .errors import LightTimeConfigurationError


class LinkEndType(str, Enum):
    TRANSMITTER = "transmitter"
    RETRANSMITTER = "retransmitter"
    REFLECTOR1 = "reflector1"
    REFLECTOR2 = "reflector2"
    REFLECTOR3 = "reflector3"
    REFLECTOR4 = "reflector4"
    RECEIVER = "receiver"


_REFLECTOR_INDEX = {
    LinkEndType.REFLECTOR1: 1,
    LinkEndType.REFLECTOR2: 2,
    LinkEndType.REFLECTOR3: 3,
    LinkEndType.REFLECTOR4: 4,
}


def n_way_link_index_from_link_end_type(
    link_end_type: LinkEndType | str, number_of_link_ends: int
) -> int:
    """Map a link-end role onto its position in an n-way chain (0 = transmitter)."""
    if number_of_link_ends < 2:
        raise LightTimeConfigurationError(
            f"An n-way link needs at least 2 link ends; got {number_of_link_ends}"
        )
    try:
        role = LinkEndType(link_end_type)
    except ValueError as exc:
        raise LightTimeConfigurationError(f"Unknown link end type: {link_end_type!r}") from exc

    if role is LinkEndType.TRANSMITTER:
        return 0
    if role is LinkEndType.RECEIVER:
        return number_of_link_ends - 1
    if role is LinkEndType.RETRANSMITTER:
        if number_of_link_ends != 3:
            raise LightTimeConfigurationError(
                "RETRANSMITTER is only defined for 3 link ends; "
                f"use REFLECTOR1..4 for {number_of_link_ends} link ends"
            )
        return 1
    index = _REFLECTOR_INDEX[role]
    if index >= number_of_link_ends - 1:
        raise LightTimeConfigurationError(
            f"{role.name} is not an interior link end of a {number_of_link_ends}-link-end chain"
        )
    return index


def link_end_type_from_n_way_index(index: int, number_of_link_ends: int) -> LinkEndType:
    if index < 0 or index >= number_of_link_ends:
        raise LightTimeConfigurationError(
            f"Link end index {index} out of range for {number_of_link_ends} link ends"
        )
    if index == 0:
        return LinkEndType.TRANSMITTER
    if index == number_of_link_ends - 1:
        return LinkEndType.RECEIVER
    if index > len(_REFLECTOR_INDEX):
        raise LightTimeConfigurationError(f"No named link end type for interior index {index}")
    return LinkEndType(f"reflector{index}")
