"""Breadboard strip layout.

A full-size board alternates rail sections (one negative and one positive
strip running the length of the board) with regular sections (two 5-hole
strips per row, A-E on the left and F-J on the right). Every hole on a
strip is the same net.
"""

from __future__ import annotations

from circuit_engine.schemas.snapshot import Strip, StripKind

BOARD_ROWS = 64
PINS_PER_STRIP = 5
BOARD_SECTIONS = 7


def _strip_id(kind: StripKind, identifier: str, position: str) -> str:
    return f"{kind.value}-strip-{identifier}-{position}"


def _holes(strip_id: str, count: int) -> list[str]:
    return [f"{strip_id}:{i}" for i in range(count)]


def _rail_section(position: str, rows: int) -> list[Strip]:
    strips = []
    for kind, identifier in ((StripKind.NEGATIVE, "minus"), (StripKind.POSITIVE, "plus")):
        strip_id = _strip_id(kind, identifier, position)
        strips.append(Strip(id=strip_id, kind=kind, connector_ids=_holes(strip_id, rows)))
    return strips


def _regular_section(position: str, rows: int, pins_per_strip: int) -> list[Strip]:
    strips = []
    for row in range(1, rows + 1):
        for side in ("left", "right"):
            strip_id = _strip_id(StripKind.REGULAR, str(row), f"{position}-{side}")
            strips.append(
                Strip(
                    id=strip_id,
                    kind=StripKind.REGULAR,
                    connector_ids=_holes(strip_id, pins_per_strip),
                )
            )
    return strips


def create_breadboard_strips(
    sections: int = BOARD_SECTIONS,
    rows: int = BOARD_ROWS,
    pins_per_strip: int = PINS_PER_STRIP,
) -> dict[str, Strip]:
    """Build the strip map of a board, keyed by strip id.

    Even-numbered sections are rail sections, odd-numbered ones regular
    sections, so the default board has four rail pairs and three
    regular sections.
    """
    strips: list[Strip] = []
    for index in range(sections):
        position = str(index)
        if index % 2 == 0:
            strips.extend(_rail_section(position, rows))
        else:
            strips.extend(_regular_section(position, rows, pins_per_strip))
    return {s.id: s for s in strips}


def rail_strip_ids(strips: dict[str, Strip], kind: StripKind) -> list[str]:
    return [s.id for s in strips.values() if s.kind == kind]
