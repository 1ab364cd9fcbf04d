from __future__ import annotations

from typing import NamedTuple

import numpy as np
import torch


class DetectionTarget(NamedTuple):
    # (M, 4) x1, y1, x2, y2 normalized to [0, 1]
    boxes: torch.Tensor
    # (M,) class ids
    labels: torch.Tensor

    def num_objects(self) -> int:
        return self.boxes.shape[0]

    @staticmethod
    def empty() -> DetectionTarget:
        return DetectionTarget(
            boxes=torch.zeros((0, 4), dtype=torch.float32),
            labels=torch.zeros((0,), dtype=torch.int64),
        )

    @staticmethod
    def from_numpy(boxes: np.ndarray, labels: np.ndarray) -> DetectionTarget:
        boxes = np.asarray(boxes, dtype=np.float32).reshape(-1, 4)
        labels = np.asarray(labels, dtype=np.int64).reshape(-1)

        return DetectionTarget(
            boxes=torch.from_numpy(boxes),
            labels=torch.from_numpy(labels),
        )
