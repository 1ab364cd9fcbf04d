from __future__ import annotations

from anchormatch.core.types import FeatureShape

GRID_4X4 = FeatureShape(width=4, height=4)

GRID_1X1 = FeatureShape(width=1, height=1)
