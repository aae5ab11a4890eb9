"""Impact severity classification.

Classifies how badly a change ripples to a dependent, from the dependent's
impact score, its distance from the change, and whether it lives in a core
module.
"""

import posixpath
from enum import StrEnum

CORE_MODULE_NAMES = frozenset({"index", "main", "app"})


class ImpactSeverity(StrEnum):
    """Severity tiers, most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


def is_core_module(file_path: str) -> bool:
    """Check if a file is an architectural entry point.

    A core module is named index/main/app (any extension) or lives under
    a ``core`` directory.

    Args:
        file_path: Path to the file.

    Returns:
        True if the file is a core module.
    """
    if not file_path:
        return False

    normalized = file_path.replace("\\", "/")
    stem = posixpath.splitext(posixpath.basename(normalized))[0]
    if stem in CORE_MODULE_NAMES:
        return True

    return "/core/" in f"/{normalized}"


def calculate_impact_severity(
    impact_score: float,
    depth: int,
    is_core_module: bool,
) -> ImpactSeverity:
    """Classify the severity of an impact.

    Tiers, checked in order:
    - critical: score >= 80, at most one hop (depth <= 1), core module
    - high: score >= 50 within two hops
    - medium: score >= 20, or within three hops
    - low: any positive score
    - none: otherwise

    Severity never decreases as the score grows and never increases as the
    depth grows.

    Args:
        impact_score: Impact score (0-100).
        depth: Hops from the changed entity.
        is_core_module: Whether the dependent is a core module.

    Returns:
        The severity tier.
    """
    if impact_score >= 80 and depth <= 1 and is_core_module:
        return ImpactSeverity.CRITICAL
    if impact_score >= 50 and depth <= 2:
        return ImpactSeverity.HIGH
    if impact_score >= 20 or depth <= 3:
        return ImpactSeverity.MEDIUM
    if impact_score > 0:
        return ImpactSeverity.LOW
    return ImpactSeverity.NONE
