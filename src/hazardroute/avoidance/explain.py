"""
Small formatting helpers for user-facing avoidance notices.

Used by the CLI and the API to explain which hazards were left out of a routing request.
"""

from __future__ import annotations

from typing import Sequence

from hazardroute.avoidance.guard import RouteFeasibility
from hazardroute.avoidance.validate import DroppedHazard


def dropped_line(position: int, dropped: DroppedHazard) -> str:
    """Render one dropped hazard, e.g. `#1: area ≈ 312 km², bbox ≈ 25.0×14.2 km`."""
    return (
        f"#{position}: area ≈ {dropped.area_km2:.0f} km², "
        f"bbox ≈ {dropped.width_km:.1f}×{dropped.height_km:.1f} km"
    )


def dropped_summary(dropped: Sequence[DroppedHazard]) -> str | None:
    """Multi-line notice for skipped hazards (None when nothing was skipped)."""
    if not dropped:
        return None
    lines = ["Some hazard areas are too large for routing and were skipped."]
    lines.extend(dropped_line(i, d) for i, d in enumerate(dropped, start=1))
    return "\n".join(lines)


def feasibility_message(check: RouteFeasibility) -> str:
    if check.ok:
        return f"Route leg ≈ {check.estimated_km:.0f} km; OK to request."
    return (
        f"Route too long with hazards (≈ {check.estimated_km:.0f} km). "
        "Try a shorter leg or remove some hazards."
    )
