from __future__ import annotations

import torch

from anchormatch.data.detection import DetectionTarget


def get_test_target() -> DetectionTarget:
    # a big object covering the top left quarter and a
    # small one sitting inside the bottom right cell of a 4x4 grid
    return DetectionTarget(
        boxes=torch.tensor(
            [
                [0.0, 0.0, 0.5, 0.5],
                [0.8, 0.8, 0.95, 0.95],
            ],
            dtype=torch.float32,
        ),
        labels=torch.tensor([3, 1], dtype=torch.int64),
    )


def get_cell_aligned_target() -> DetectionTarget:
    # boxes matching exactly the cells (0, 0) and (2, 1) of a 4x4 grid
    return DetectionTarget(
        boxes=torch.tensor(
            [
                [0.0, 0.0, 0.25, 0.25],
                [0.25, 0.5, 0.5, 0.75],
            ],
            dtype=torch.float32,
        ),
        labels=torch.tensor([0, 2], dtype=torch.int64),
    )
