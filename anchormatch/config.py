from __future__ import annotations

from typing import NamedTuple

from anchormatch.core.types import FeatureShape


class MatchingParams(NamedTuple):
    num_classes: int
    iou_threshold: float = 0.4
    # anything above 1.0 marks an anchor forced by the per ground truth pass
    sentinel: float = 1.99
    grid_shape: FeatureShape = FeatureShape(width=4, height=4)

    @property
    def background_class(self) -> int:
        return self.num_classes

    @staticmethod
    def get_default(num_classes: int) -> MatchingParams:
        return MatchingParams(
            num_classes=num_classes,
            iou_threshold=0.4,
            sentinel=1.99,
            grid_shape=FeatureShape(width=4, height=4),
        )

    def validate(self) -> MatchingParams:
        if self.num_classes < 1:
            raise ValueError(f"num_classes must be >= 1, got {self.num_classes}")

        if not 0.0 <= self.iou_threshold < 1.0:
            raise ValueError(
                f"iou_threshold must be in [0, 1), got {self.iou_threshold}"
            )

        if self.sentinel <= 1.0:
            raise ValueError(f"sentinel must be > 1.0, got {self.sentinel}")

        if self.grid_shape.width <= 0 or self.grid_shape.height <= 0:
            raise ValueError(f"grid_shape must be positive, got {self.grid_shape}")

        return self
