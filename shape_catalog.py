from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

GENERIC_TYPE = "generic"
GENERIC_SIZE = 50.0
GENERIC_LABEL = "Object"


@dataclass(frozen=True)
class ShapeTemplate:
    type: str
    width: float
    height: float
    label: str
    category: str
    air_value: Optional[float] = 1.0
    icon: Optional[str] = None


def _template(type_: str, width: float, height: float, label: str, category: str, icon: str) -> ShapeTemplate:
    return ShapeTemplate(type_, float(width), float(height), label, category, 1.0, f"./img/{icon}.png")


CATALOG: Dict[str, ShapeTemplate] = {
    t.type: t for t in (
        _template("door", 30, 30, "Closed door", "doors_windows", "dvercloses"),
        _template("door2", 30, 30, "Wooden door with vent opening", "doors_windows", "dverwentoknowood"),
        _template("door3", 40, 30, "Door with vent grille", "doors_windows", "dverventrech"),
        _template("door4", 30, 30, "Open metal door", "doors_windows", "dveropenmetall"),
        _template("fan", 40, 40, "Main fan", "fan", "fan"),
        _template("fan2", 40, 40, "Fan", "fan", "fan2"),
        _template("fire", 40, 40, "Fire", "fire", "fire"),
        _template("fire2", 40, 40, "Fire hydrant", "fire", "pozarniigidrant"),
        _template("boom", 40, 40, "Mass blasting", "boom", "massovievzivniepaboti"),
        _template("boom2", 40, 40, "Blasting", "boom", "vzrivnieraboti"),
        _template("medical", 40, 40, "First aid post", "medical", "medpunkt"),
        _template("building", 30, 30, "Headframe building", "building", "nadshahtnoe"),
        _template("pumps", 40, 40, "Submersible pump", "pumps", "nanospogruznoi"),
        _template("pumps2", 40, 40, "Pumping station", "pumps", "nasosnayastancia"),
        _template("people", 40, 40, "People", "people", "people"),
        _template("jumper", 30, 30, "Concrete stopping", "jumper", "petemichkabeton"),
        _template("jumper2", 30, 30, "Brick stopping", "jumper", "petemichkakirpich"),
        _template("jumper3", 30, 30, "Metal stopping", "jumper", "petemichkametall"),
        _template("jumper4", 30, 30, "Wooden stopping", "jumper", "petemichkawood"),
        _template("phone", 40, 40, "Telephone", "phone", "phone"),
        _template("equipment", 40, 40, "Self-propelled equipment", "equipment", "samohodnoe"),
        _template("entrance", 40, 20, "Emergency entrance", "entrance", "zapasvhod"),
    )
}

GENERIC_TEMPLATE = ShapeTemplate(GENERIC_TYPE, GENERIC_SIZE, GENERIC_SIZE, GENERIC_LABEL, GENERIC_TYPE, None)


def lookup(type_: str) -> ShapeTemplate:
    """Catalog entry for `type_`, or the generic 50x50 template without an airValue."""
    return CATALOG.get(type_, GENERIC_TEMPLATE)


def shape_types(category: Optional[str] = None) -> List[Tuple[str, str, str]]:
    return [
        (t.type, t.label, t.category)
        for t in CATALOG.values()
        if category is None or t.category == category
    ]


def categories() -> List[str]:
    return sorted({t.category for t in CATALOG.values()})
