from __future__ import annotations
from enum import StrEnum

class FailureCategory(StrEnum):
    probe_failure = "probe_failure"
    validation_failure = "validation_failure"
    capability_mismatch = "capability_mismatch"
    normalization_failure = "normalization_failure"
    profile_selection_failure = "profile_selection_failure"
    # execution sub-categories
    encoder_init_failure = "encoder_init_failure"
    execution_timeout = "execution_timeout"
    disk_space_exhausted = "disk_space_exhausted"
    permission_denied = "permission_denied"
    execution_failure = "execution_failure"
    unexpected = "unexpected"
