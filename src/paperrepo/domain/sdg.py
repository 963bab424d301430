from __future__ import annotations

import re
from typing import Any, List, Optional

SDG_NAMES = {
    1: "No Poverty",
    2: "Zero Hunger",
    3: "Good Health and Well-being",
    4: "Quality Education",
    5: "Gender Equality",
    6: "Clean Water and Sanitation",
    7: "Affordable and Clean Energy",
    8: "Decent Work and Economic Growth",
    9: "Industry, Innovation and Infrastructure",
    10: "Reduced Inequality",
    11: "Sustainable Cities and Communities",
    12: "Responsible Consumption and Production",
    13: "Climate Action",
    14: "Life Below Water",
    15: "Life on Land",
    16: "Peace and Justice Strong Institutions",
    17: "Partnerships to achieve the Goal",
}

_NUMBER_RE = re.compile(r"(\d+)")


def sdg_number(value: Any) -> Optional[int]:
    """Extract the goal number from "3", 3, "SDG 3", "SDG 3: ..." or {"id": 3}."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, dict):
        for key in ("id", "value", "number", "name"):
            if value.get(key) is not None:
                return sdg_number(value[key])
        return None
    if isinstance(value, int):
        number = value
    else:
        match = _NUMBER_RE.search(str(value))
        if not match:
            return None
        number = int(match.group(1))
    return number if number in SDG_NAMES else None


def sdg_label(value: Any) -> Optional[str]:
    number = sdg_number(value)
    if number is None:
        return None
    return f"SDG {number}: {SDG_NAMES[number]}"


def normalize_sdgs(values: Optional[List[Any]]) -> List[str]:
    """Normalise to full labels, dropping unknown goals and duplicates, keeping order."""
    out: List[str] = []
    for value in values or []:
        label = sdg_label(value)
        if label and label not in out:
            out.append(label)
    return out
