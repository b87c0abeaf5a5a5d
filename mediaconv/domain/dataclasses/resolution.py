from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from mediaconv.domain.dataclasses.capabilities import Resolution


@dataclass(frozen=True)
class ResolutionPlan:
    """
    Decision of the Resolution Normalization stage.
    - target is always an even pair
    - needs_adjustment False implies target == original
    - original is None only for the safe-default plan (no usable video stream)
    """
    needs_adjustment: bool
    original: Optional[Resolution]
    target: Resolution
    reason: Optional[str] = None
    warnings: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.target.is_even:
            raise ValueError(f"target resolution must be even, got {self.target}")
        if not self.needs_adjustment and self.target != self.original:
            raise ValueError("an unadjusted plan must target the original resolution")

    @property
    def scale_filter(self) -> Optional[str]:
        if not self.needs_adjustment:
            return None
        return f"scale={self.target.width}:{self.target.height}"
