from __future__ import annotations

from typing import NamedTuple

import torch

from anchormatch.core.bbox.boxes import XYXYBoundingBox


class BBCoordinates(NamedTuple):
    x1: torch.Tensor
    y1: torch.Tensor
    x2: torch.Tensor
    y2: torch.Tensor

    def get_width(self) -> torch.Tensor:
        return self.x2 - self.x1

    def get_height(self) -> torch.Tensor:
        return self.y2 - self.y1

    def get_area(self) -> torch.Tensor:
        return self.get_width() * self.get_height()


def _check_boxes(boxes: torch.Tensor, name: str) -> torch.Tensor:
    # an empty 1-d tensor is accepted as "no boxes"
    if boxes.dim() == 1 and boxes.numel() == 0:
        return boxes.reshape(0, 4)

    if boxes.dim() < 2 or boxes.size(-1) != 4:
        raise ValueError(
            f"{name} must have shape (..., num_boxes, 4), got {tuple(boxes.shape)}"
        )

    return boxes


def _intersection_area(
    boxes1: BBCoordinates,
    boxes2: BBCoordinates,
) -> torch.Tensor:
    x1, y1, x2, y2 = boxes1
    x1g, y1g, x2g, y2g = boxes2

    x1i = torch.max(x1, x1g)
    y1i = torch.max(y1, y1g)
    x2i = torch.min(x2, x2g)
    y2i = torch.min(y2, y2g)

    return (x2i - x1i).clamp(min=0) * (y2i - y1i).clamp(min=0)


def _safe_divide(inter: torch.Tensor, union: torch.Tensor) -> torch.Tensor:
    # a zero union only happens when both boxes are degenerate
    non_empty = union > 0
    denominator = torch.where(non_empty, union, torch.ones_like(union))
    return torch.where(non_empty, inter / denominator, torch.zeros_like(inter))


def compute_iou(
    boxes1: torch.Tensor,
    boxes2: torch.Tensor,
) -> torch.Tensor:
    """Element-wise IoU of two aligned sets of xyxy boxes."""
    if boxes1.shape != boxes2.shape:
        raise ValueError(
            "Aligned IoU expects boxes of the same shape, "
            f"got {tuple(boxes1.shape)} and {tuple(boxes2.shape)}"
        )

    if boxes1.dim() == 0 or boxes1.size(-1) != 4:
        raise ValueError(
            f"Boxes must have shape (..., 4), got {tuple(boxes1.shape)}"
        )

    b1_coords = BBCoordinates(*boxes1.unbind(dim=-1))
    b2_coords = BBCoordinates(*boxes2.unbind(dim=-1))

    inter = _intersection_area(b1_coords, b2_coords)
    union = b1_coords.get_area() + b2_coords.get_area() - inter

    return _safe_divide(inter, union)


def compute_iou_unaligned(
    bboxes1: torch.Tensor,
    bboxes2: torch.Tensor,
) -> torch.Tensor:
    """Pairwise IoU matrix.

    Args:
        bboxes1: (..., M, 4) boxes in xyxy format, e.g. the ground truths
        bboxes2: (..., N, 4) boxes in xyxy format, e.g. the anchors

    Returns:
        (..., M, N) tensor where [i, j] is the IoU between bboxes1[i]
        and bboxes2[j]. Pairs with an empty union get 0.
    """
    bboxes1 = _check_boxes(bboxes1, "bboxes1")
    bboxes2 = _check_boxes(bboxes2, "bboxes2")

    # Batch dim must be the same
    # Batch dim: (B1, B2, ... Bn)
    if bboxes1.shape[:-2] != bboxes2.shape[:-2]:
        raise ValueError(
            "Batch dimensions must match, "
            f"got {tuple(bboxes1.shape)} and {tuple(bboxes2.shape)}"
        )
    batch_shape = bboxes1.shape[:-2]

    rows = bboxes1.size(-2)
    cols = bboxes2.size(-2)

    dtype = torch.promote_types(bboxes1.dtype, bboxes2.dtype)
    if not dtype.is_floating_point:
        dtype = torch.float32

    if rows * cols == 0:
        return bboxes1.new_zeros(batch_shape + (rows, cols), dtype=dtype)

    bboxes1 = bboxes1.to(dtype)
    bboxes2 = bboxes2.to(dtype)

    area1 = (bboxes1[..., 2] - bboxes1[..., 0]) * (bboxes1[..., 3] - bboxes1[..., 1])
    area2 = (bboxes2[..., 2] - bboxes2[..., 0]) * (bboxes2[..., 3] - bboxes2[..., 1])

    # [B, rows, cols, 2]
    lt = torch.max(bboxes1[..., :, None, :2], bboxes2[..., None, :, :2])
    # [B, rows, cols, 2]
    rb = torch.min(bboxes1[..., :, None, 2:], bboxes2[..., None, :, 2:])

    wh = (rb - lt).clamp(min=0)

    overlap = wh[..., 0] * wh[..., 1]
    union = area1[..., None] + area2[..., None, :] - overlap

    return _safe_divide(overlap, union)


def jaccard(box_a: XYXYBoundingBox, box_b: XYXYBoundingBox) -> float:
    inter_w = max(0.0, min(box_a.x_max, box_b.x_max) - max(box_a.x_min, box_b.x_min))
    inter_h = max(0.0, min(box_a.y_max, box_b.y_max) - max(box_a.y_min, box_b.y_min))
    inter = inter_w * inter_h

    union = box_a.area() + box_b.area() - inter
    if union <= 0:
        return 0.0

    return inter / union


def compute_iou_loop(
    gt_boxes: torch.Tensor,
    anchors: torch.Tensor,
) -> torch.Tensor:
    """Reference (M, N) overlap matrix built one pair at a time.

    Slow, only meant to cross-check compute_iou_unaligned.
    """
    gt_boxes = _check_boxes(gt_boxes, "gt_boxes")
    anchors = _check_boxes(anchors, "anchors")
    if gt_boxes.dim() != 2 or anchors.dim() != 2:
        raise ValueError("compute_iou_loop does not support batch dimensions")

    gts = XYXYBoundingBox.from_batched_tensor(gt_boxes)
    ancs = XYXYBoundingBox.from_batched_tensor(anchors)

    overlaps = torch.zeros((len(gts), len(ancs)), dtype=torch.float64)
    for i, g in enumerate(gts):
        for j, a in enumerate(ancs):
            overlaps[i, j] = jaccard(g, a)

    return overlaps
