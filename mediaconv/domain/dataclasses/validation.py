from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from mediaconv.domain.entities.probe import MediaMetadata


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of the Validation stage. Errors block; warnings and recommendations do not."""
    valid: bool
    metadata: Optional[MediaMetadata]
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()
