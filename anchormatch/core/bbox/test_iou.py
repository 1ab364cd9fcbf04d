from __future__ import annotations

import pytest
import torch

from anchormatch.core.bbox.boxes import XYXYBoundingBox
from anchormatch.core.bbox.iou import (
    compute_iou,
    compute_iou_loop,
    compute_iou_unaligned,
    jaccard,
)


def _pair(box_a: list[float], box_b: list[float]) -> float:
    overlaps = compute_iou_unaligned(torch.tensor([box_a]), torch.tensor([box_b]))
    assert overlaps.shape == (1, 1)
    return float(overlaps[0, 0])


def test_partial_overlap():
    expected = 0.25 / 1.75
    assert _pair([0.0, 0.0, 1.0, 1.0], [0.5, 0.5, 1.5, 1.5]) == pytest.approx(expected)
    assert _pair([0.5, 0.5, 1.5, 1.5], [0.0, 0.0, 1.0, 1.0]) == pytest.approx(expected)


def test_disjoint_boxes():
    assert _pair([0.0, 0.0, 1.0, 1.0], [2.0, 2.0, 3.0, 3.0]) == 0.0


def test_identical_boxes():
    assert _pair([0.0, 0.0, 1.0, 1.0], [0.0, 0.0, 1.0, 1.0]) == pytest.approx(1.0)


def test_zero_area_box():
    assert _pair([0.0, 0.0, 0.0, 0.0], [0.0, 0.0, 1.0, 1.0]) == 0.0
    assert _pair([0.5, 0.5, 0.5, 0.5], [0.0, 0.0, 1.0, 1.0]) == 0.0
    # both degenerate, the union is empty
    overlaps = compute_iou_unaligned(torch.zeros((1, 4)), torch.zeros((2, 4)))
    assert not torch.isnan(overlaps).any()
    assert torch.equal(overlaps, torch.zeros((1, 2)))


def test_matrix_layout():
    gt = torch.tensor(
        [
            [0.0, 0.0, 0.5, 0.5],
            [0.5, 0.5, 1.0, 1.0],
        ]
    )
    anchors = torch.tensor(
        [
            [0.0, 0.0, 0.5, 0.5],
            [0.0, 0.0, 1.0, 1.0],
            [0.5, 0.5, 1.0, 1.0],
        ]
    )

    overlaps = compute_iou_unaligned(gt, anchors)

    expected = torch.tensor(
        [
            [1.0, 0.25, 0.0],
            [0.0, 0.25, 1.0],
        ]
    )
    torch.testing.assert_close(overlaps, expected)


def test_empty_inputs():
    anchors = torch.rand((16, 4))

    overlaps = compute_iou_unaligned(torch.zeros((0, 4)), anchors)
    assert overlaps.shape == (0, 16)

    overlaps = compute_iou_unaligned(torch.zeros(0), anchors)
    assert overlaps.shape == (0, 16)

    overlaps = compute_iou_unaligned(anchors, torch.zeros((0, 4)))
    assert overlaps.shape == (16, 0)


def test_batched():
    gt = torch.tensor([[[0.0, 0.0, 1.0, 1.0]], [[0.0, 0.0, 0.5, 0.5]]])
    anchors = torch.tensor([[[0.0, 0.0, 1.0, 1.0]], [[0.0, 0.0, 1.0, 1.0]]])

    overlaps = compute_iou_unaligned(gt, anchors)

    assert overlaps.shape == (2, 1, 1)
    torch.testing.assert_close(overlaps.flatten(), torch.tensor([1.0, 0.25]))


def test_shape_errors():
    with pytest.raises(ValueError, match="num_boxes, 4"):
        compute_iou_unaligned(torch.zeros((2, 3)), torch.zeros((4, 4)))

    with pytest.raises(ValueError, match="Batch dimensions"):
        compute_iou_unaligned(torch.zeros((2, 3, 4)), torch.zeros((3, 5, 4)))

    with pytest.raises(ValueError, match="same shape"):
        compute_iou(torch.zeros((2, 4)), torch.zeros((3, 4)))


def test_aligned():
    boxes1 = torch.tensor([[0.0, 0.0, 1.0, 1.0], [0.0, 0.0, 1.0, 1.0]])
    boxes2 = torch.tensor([[0.5, 0.5, 1.5, 1.5], [0.0, 0.0, 0.0, 0.0]])

    iou = compute_iou(boxes1, boxes2)

    torch.testing.assert_close(iou, torch.tensor([0.25 / 1.75, 0.0]))


def test_jaccard():
    a = XYXYBoundingBox(0.0, 0.0, 1.0, 1.0)

    assert jaccard(a, XYXYBoundingBox(0.5, 0.5, 1.5, 1.5)) == pytest.approx(0.25 / 1.75)
    assert jaccard(a, XYXYBoundingBox(2.0, 2.0, 3.0, 3.0)) == 0.0
    assert jaccard(a, a) == 1.0
    assert jaccard(XYXYBoundingBox(0.0, 0.0, 0.0, 0.0), a) == 0.0
    assert jaccard(XYXYBoundingBox(0, 0, 0, 0), XYXYBoundingBox(0, 0, 0, 0)) == 0.0


def test_vectorized_matches_loop():
    generator = torch.Generator().manual_seed(7)

    def random_boxes(n: int) -> torch.Tensor:
        xy = torch.rand((n, 2), generator=generator, dtype=torch.float64) * 0.8
        wh = torch.rand((n, 2), generator=generator, dtype=torch.float64) * 0.5
        return torch.cat((xy, xy + wh), dim=-1)

    gt = random_boxes(7)
    anchors = random_boxes(16)
    # throw in a degenerate ground truth
    gt[3, 2:] = gt[3, :2]

    torch.testing.assert_close(
        compute_iou_unaligned(gt, anchors),
        compute_iou_loop(gt, anchors),
    )
