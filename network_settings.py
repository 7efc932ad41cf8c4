from __future__ import annotations

from dataclasses import dataclass

# all distances are in canvas units
MERGE_TOLERANCE = 5.0
ON_SEGMENT_TOLERANCE = 3.0
ENDPOINT_TOLERANCE = 5.0
MIN_SEGMENT_LENGTH = 5.0
MIN_ON_SEGMENT_LENGTH = 1.0
PARALLEL_EPS = 1e-4
PARAM_EPS = 1e-3

MAX_PROPAGATION_PASSES = 10
DEFAULT_TR = 100.0
TR_CHANGE_EPS = 1e-9

PICK_TOLERANCE = 10.0
GRID_SIZE = 20.0
SNAP_RADIUS = 15.0

PASSABILITY_START = 5
PASSABILITY_END = 10
PASSABILITY_MIDDLE = 0


@dataclass(frozen=True)
class NetworkSettings:
    """Thresholds shared by every stage of the recompute pipeline."""
    merge_tolerance: float = MERGE_TOLERANCE
    on_segment_tolerance: float = ON_SEGMENT_TOLERANCE
    endpoint_tolerance: float = ENDPOINT_TOLERANCE
    min_segment_length: float = MIN_SEGMENT_LENGTH
    min_on_segment_length: float = MIN_ON_SEGMENT_LENGTH
    parallel_eps: float = PARALLEL_EPS
    param_eps: float = PARAM_EPS
    max_passes: int = MAX_PROPAGATION_PASSES
    default_tr: float = DEFAULT_TR
    tr_change_eps: float = TR_CHANGE_EPS
    pick_tolerance: float = PICK_TOLERANCE
    grid_size: float = GRID_SIZE
    snap_radius: float = SNAP_RADIUS

    def __post_init__(self) -> None:
        for name in ("merge_tolerance", "on_segment_tolerance", "endpoint_tolerance",
                     "min_segment_length", "pick_tolerance", "grid_size", "snap_radius"):
            if not getattr(self, name) > 0.0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)!r}")
        if int(self.max_passes) < 1:
            raise ValueError(f"max_passes must be at least 1, got {self.max_passes!r}")
