"""
Shared compute infrastructure for phyloboot.

Timing utilities and the precision tiers shared by the fitters and the
bootstrap driver. Domain-specific backends live in {domain}/backends/.
"""

from phyloboot.core.compute.timing import Timer
from phyloboot.core.compute.tolerances import (
    PrecisionTier,
    LOW,
    MED,
    HIGH,
    select_precision,
)

__all__ = [
    # Timing
    "Timer",
    # Precision
    "PrecisionTier",
    "LOW",
    "MED",
    "HIGH",
    "select_precision",
]
