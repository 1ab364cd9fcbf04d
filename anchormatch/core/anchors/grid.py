from __future__ import annotations

from typing import NamedTuple

import einops
import torch
import torchvision as tv
from absl import logging

from anchormatch.core.types import FeatureShape


class AnchorGrid(NamedTuple):
    grid_shape: FeatureShape
    # (N, 4) cx, cy, w, h
    anchors_cxcywh: torch.Tensor
    # (N, 4) x1, y1, x2, y2
    anchors_xyxy: torch.Tensor

    def num_anchors(self) -> int:
        return self.anchors_xyxy.shape[0]


def make_anchor_grid(
    grid_shape: FeatureShape,
    dtype: torch.dtype = torch.float32,
) -> AnchorGrid:
    """One anchor per cell of a regular grid over the normalized image.

    Anchors are ordered row major, i.e. the anchor of cell (row, col)
    is at index row * grid_shape.width + col.
    """
    if grid_shape.width <= 0 or grid_shape.height <= 0:
        raise ValueError(f"Grid shape must be positive, got {grid_shape}")

    cell_w = 1.0 / grid_shape.width
    cell_h = 1.0 / grid_shape.height

    cx = (torch.arange(grid_shape.width, dtype=dtype) + 0.5) * cell_w
    cy = (torch.arange(grid_shape.height, dtype=dtype) + 0.5) * cell_h

    grid_y, grid_x = torch.meshgrid(cy, cx, indexing="ij")

    centers = torch.stack((grid_x, grid_y), dim=-1)
    centers = einops.rearrange(centers, "h w c -> (h w) c")

    sizes = torch.tensor([cell_w, cell_h], dtype=dtype)
    sizes = einops.repeat(sizes, "c -> n c", n=centers.shape[0])

    anchors_cxcywh = torch.cat((centers, sizes), dim=-1)
    anchors_xyxy = tv.ops.box_convert(
        anchors_cxcywh,
        in_fmt="cxcywh",
        out_fmt="xyxy",
    )

    logging.info(
        f"Created {anchors_xyxy.shape[0]} anchors "
        f"for a {grid_shape.width}x{grid_shape.height} grid"
    )

    return AnchorGrid(
        grid_shape=grid_shape,
        anchors_cxcywh=anchors_cxcywh,
        anchors_xyxy=anchors_xyxy,
    )
