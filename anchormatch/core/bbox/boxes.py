from __future__ import annotations

from typing import Sequence
from typing import NamedTuple

import torch


class CXCYWHBoundingBox(NamedTuple):
    cx: float
    cy: float
    width: float
    height: float

    def to_xyxy(self) -> XYXYBoundingBox:
        return XYXYBoundingBox.from_cxcywh(self)

    @staticmethod
    def from_tensor(box: torch.Tensor) -> CXCYWHBoundingBox:
        return CXCYWHBoundingBox(*box.tolist())


class XYXYBoundingBox(NamedTuple):
    x_min: float
    y_min: float
    x_max: float
    y_max: float

    @staticmethod
    def from_cxcywh(box: CXCYWHBoundingBox) -> XYXYBoundingBox:
        return XYXYBoundingBox(
            x_min=box.cx - box.width / 2,
            y_min=box.cy - box.height / 2,
            x_max=box.cx + box.width / 2,
            y_max=box.cy + box.height / 2,
        )

    def width(self) -> float:
        return self.x_max - self.x_min

    def height(self) -> float:
        return self.y_max - self.y_min

    def area(self) -> float:
        return self.width() * self.height()

    def is_valid(self) -> bool:
        return self.x_max >= self.x_min and self.y_max >= self.y_min

    @staticmethod
    def from_list(box: Sequence[float]) -> XYXYBoundingBox:
        if len(box) != 4:
            raise ValueError(f"Expected 4 coordinates, got {len(box)}: {list(box)}")

        return XYXYBoundingBox(
            x_min=box[0],
            y_min=box[1],
            x_max=box[2],
            y_max=box[3],
        )

    def to_list(self) -> list[float]:
        return [self.x_min, self.y_min, self.x_max, self.y_max]

    def to_tensor(self) -> torch.Tensor:
        return torch.tensor(
            [self.x_min, self.y_min, self.x_max, self.y_max],
            dtype=torch.float32,
        )

    @staticmethod
    def to_batched_tensor(
        boxes: Sequence[XYXYBoundingBox],
    ) -> torch.Tensor:
        if not boxes:
            return torch.zeros((0, 4), dtype=torch.float32)

        tensor_boxes = []
        for b in boxes:
            tensor_boxes.append(b.to_tensor())
        return torch.stack(tensor_boxes, dim=0)

    @staticmethod
    def from_tensor(box: torch.Tensor) -> XYXYBoundingBox:
        box_values = box.tolist()
        return XYXYBoundingBox(
            x_min=box_values[0],
            y_min=box_values[1],
            x_max=box_values[2],
            y_max=box_values[3],
        )

    @staticmethod
    def from_batched_tensor(boxes: torch.Tensor) -> Sequence[XYXYBoundingBox]:
        return list(map(XYXYBoundingBox.from_tensor, boxes))
