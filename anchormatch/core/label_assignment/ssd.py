from __future__ import annotations

from typing import Sequence
from typing import NamedTuple

import torch
from absl import logging

from anchormatch.config import MatchingParams
from anchormatch.core.anchors.grid import AnchorGrid
from anchormatch.core.bbox.iou import compute_iou_unaligned
from anchormatch.data.detection import DetectionTarget


class MatchResult(NamedTuple):
    # (N,) overlap of every anchor with its ground truth,
    # sentinel where the anchor was forced
    gt_overlap: torch.Tensor
    # (N,) 0-based ground truth index, -1 when there is no ground truth
    gt_idx: torch.Tensor
    # (M,) best anchor of every ground truth
    best_anchor_per_gt: torch.Tensor


class SSDTargets(NamedTuple):
    # (..., N) class id per anchor, background for negatives
    labels: torch.Tensor
    # (..., N, 4) xyxy box per anchor, zeros for negatives
    boxes: torch.Tensor
    # (..., N)
    positive: torch.Tensor


def match_anchors(
    overlaps: torch.Tensor,
    sentinel: float = 1.99,
) -> MatchResult:
    """Greedy two pass matching of ground truths to anchors.

    1. every ground truth picks its best anchor
    2. every anchor picks its best ground truth
    3. the picks of (1) override the ones of (2) and get the sentinel
       as overlap

    Ties are resolved in favour of the lowest index. If two ground truths
    pick the same anchor in (1), the later one keeps it and the earlier
    one may end up without any anchor.

    Args:
        overlaps: (M, N) IoU between M ground truths and N anchors
        sentinel: overlap given to the forced anchors, must be > 1

    Returns:
        MatchResult
    """
    if overlaps.dim() != 2:
        raise ValueError(
            "overlaps must be a (num_gt, num_anchors) matrix, "
            f"got shape {tuple(overlaps.shape)}"
        )

    if sentinel <= 1.0:
        raise ValueError(f"sentinel must be > 1.0, got {sentinel}")

    num_gt, num_anchors = overlaps.shape

    if num_gt == 0:
        return MatchResult(
            gt_overlap=overlaps.new_zeros((num_anchors,)),
            gt_idx=torch.full(
                (num_anchors,), -1, dtype=torch.int64, device=overlaps.device
            ),
            best_anchor_per_gt=torch.zeros(
                (0,), dtype=torch.int64, device=overlaps.device
            ),
        )

    if num_anchors == 0:
        raise ValueError("Cannot match ground truths against an empty anchor set")

    # argmax returns the first occurrence of the maximum
    best_anchor_per_gt = overlaps.argmax(dim=1)

    gt_idx = overlaps.argmax(dim=0)
    gt_overlap = overlaps.gather(0, gt_idx[None, :]).squeeze(0).clone()

    # Note -
    # this is an ordered loop on purpose, index_put with duplicate
    # indices does not guarantee which write wins
    for i, anchor_idx in enumerate(best_anchor_per_gt.tolist()):
        gt_idx[anchor_idx] = i
        gt_overlap[anchor_idx] = sentinel

    return MatchResult(
        gt_overlap=gt_overlap,
        gt_idx=gt_idx,
        best_anchor_per_gt=best_anchor_per_gt,
    )


class SSDLabelAssigner(object):
    def __init__(
        self,
        anchor_grid: AnchorGrid,
        params: MatchingParams,
    ):
        self.anchor_grid = anchor_grid
        self.params = params.validate()

    @property
    def num_anchors(self) -> int:
        return self.anchor_grid.num_anchors()

    def _validate_target(self, target: DetectionTarget):
        boxes, labels = target

        if boxes.dim() != 2 or boxes.size(-1) != 4:
            raise ValueError(
                f"Target boxes must have shape (M, 4), got {tuple(boxes.shape)}"
            )

        if labels.dim() != 1:
            raise ValueError(
                f"Target labels must have shape (M,), got {tuple(labels.shape)}"
            )

        if boxes.shape[0] != labels.shape[0]:
            raise ValueError(
                f"Got {boxes.shape[0]} boxes but {labels.shape[0]} labels"
            )

        if boxes.shape[0] == 0:
            return

        if labels.dtype.is_floating_point:
            raise ValueError(f"Target labels must be integers, got {labels.dtype}")

        if labels.min() < 0 or labels.max() >= self.params.num_classes:
            raise ValueError(
                f"Target labels must be in [0, {self.params.num_classes}), "
                f"got {labels.tolist()}"
            )

        if (boxes[:, 2:] < boxes[:, :2]).any():
            raise ValueError("Target boxes must satisfy x2 >= x1 and y2 >= y1")

    def _background_targets(self, device: torch.device) -> SSDTargets:
        anchors = self.anchor_grid.anchors_xyxy

        return SSDTargets(
            labels=torch.full(
                (self.num_anchors,),
                self.params.background_class,
                dtype=torch.int64,
                device=device,
            ),
            boxes=torch.zeros_like(anchors, device=device),
            positive=torch.zeros(
                (self.num_anchors,), dtype=torch.bool, device=device
            ),
        )

    def assign_with_match(
        self,
        target: DetectionTarget,
    ) -> tuple[SSDTargets, MatchResult]:
        """Same as assign but also returns the matching the targets come from."""
        self._validate_target(target)

        device = target.boxes.device
        anchors = self.anchor_grid.anchors_xyxy.to(device=device)
        gt_boxes = target.boxes.to(dtype=anchors.dtype)

        overlaps = compute_iou_unaligned(gt_boxes, anchors)
        match = match_anchors(overlaps, sentinel=self.params.sentinel)

        if gt_boxes.shape[0] == 0:
            logging.debug("No ground truth, all anchors are background")
            return self._background_targets(device), match

        # strictly greater, an overlap equal to the threshold is background
        positive = match.gt_overlap > self.params.iou_threshold

        matched_labels = target.labels.to(device=device, dtype=torch.int64)[
            match.gt_idx
        ]
        labels = torch.where(
            positive,
            matched_labels,
            torch.full_like(matched_labels, self.params.background_class),
        )

        matched_boxes = gt_boxes[match.gt_idx]
        boxes = torch.where(
            positive[:, None],
            matched_boxes,
            torch.zeros_like(matched_boxes),
        )

        logging.debug(
            f"{int(positive.sum())} positive anchors "
            f"for {gt_boxes.shape[0]} ground truths"
        )

        return SSDTargets(labels=labels, boxes=boxes, positive=positive), match

    def assign(self, target: DetectionTarget) -> SSDTargets:
        targets, _ = self.assign_with_match(target)
        return targets

    def __call__(self, targets: Sequence[DetectionTarget]) -> SSDTargets:
        per_image = [self.assign(t) for t in targets]

        if not per_image:
            anchors = self.anchor_grid.anchors_xyxy
            return SSDTargets(
                labels=torch.zeros((0, self.num_anchors), dtype=torch.int64),
                boxes=torch.zeros((0,) + tuple(anchors.shape), dtype=anchors.dtype),
                positive=torch.zeros((0, self.num_anchors), dtype=torch.bool),
            )

        return SSDTargets(
            labels=torch.stack([t.labels for t in per_image], dim=0),
            boxes=torch.stack([t.boxes for t in per_image], dim=0),
            positive=torch.stack([t.positive for t in per_image], dim=0),
        )
