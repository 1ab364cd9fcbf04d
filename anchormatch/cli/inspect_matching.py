from __future__ import annotations

from typing import List
from typing import Optional

import typer
from absl import logging

from rich.table import Table
from rich.console import Console

from anchormatch.config import MatchingParams
from anchormatch.core.types import FeatureShape
from anchormatch.core.bbox.boxes import CXCYWHBoundingBox, XYXYBoundingBox
from anchormatch.core.anchors.grid import make_anchor_grid
from anchormatch.core.label_assignment.ssd import SSDLabelAssigner
from anchormatch.data.detection import DetectionTarget

app = typer.Typer()


def _parse_box(box: str) -> XYXYBoundingBox:
    try:
        values = [float(v) for v in box.split(",")]
    except ValueError:
        raise typer.BadParameter(f"{box} is not a list of numbers")

    try:
        parsed = XYXYBoundingBox.from_list(values)
    except ValueError as e:
        raise typer.BadParameter(str(e))

    if not parsed.is_valid():
        raise typer.BadParameter(f"{box} must satisfy x2 >= x1 and y2 >= y1")

    return parsed


def _fmt_box(box: XYXYBoundingBox) -> str:
    return "(" + ", ".join(f"{v:.3f}" for v in box.to_list()) + ")"


@app.command()
def inspect_matching(
    box: List[str] = typer.Option([], help="x1,y1,x2,y2 normalized"),
    label: List[int] = typer.Option([], help="class id of every box"),
    num_classes: int = 20,
    grid_size: int = 4,
    threshold: float = 0.4,
    only_positive: bool = False,
    title: Optional[str] = None,
):
    """Print how the anchors of a grid get matched to the given boxes."""
    if len(box) != len(label):
        raise typer.BadParameter(f"Got {len(box)} boxes but {len(label)} labels")

    params = MatchingParams(
        num_classes=num_classes,
        iou_threshold=threshold,
        grid_shape=FeatureShape(width=grid_size, height=grid_size),
    )

    try:
        params.validate()
    except ValueError as e:
        raise typer.BadParameter(str(e))

    anchor_grid = make_anchor_grid(params.grid_shape)
    assigner = SSDLabelAssigner(anchor_grid, params)

    gt_boxes = XYXYBoundingBox.to_batched_tensor([_parse_box(b) for b in box])
    target = DetectionTarget.from_numpy(gt_boxes.numpy(), label)

    targets, match = assigner.assign_with_match(target)

    logging.info(f"{int(targets.positive.sum())} positive anchors")

    table = Table(
        title=title or f"{grid_size}x{grid_size} anchors",
        header_style="bold magenta",
    )
    table.add_column("Anchor")
    table.add_column("Anchor box")
    table.add_column("GT")
    table.add_column("Overlap")
    table.add_column("Label")
    table.add_column("Positive")

    for idx in range(anchor_grid.num_anchors()):
        is_positive = bool(targets.positive[idx])
        if only_positive and not is_positive:
            continue

        anchor = CXCYWHBoundingBox.from_tensor(anchor_grid.anchors_cxcywh[idx])
        gt = int(match.gt_idx[idx])
        table.add_row(
            str(idx),
            _fmt_box(anchor.to_xyxy()),
            "-" if gt < 0 else str(gt),
            f"{float(match.gt_overlap[idx]):.3f}",
            str(int(targets.labels[idx])),
            "yes" if is_positive else "no",
        )

    console = Console()
    console.print(table)


if __name__ == "__main__":
    logging.set_verbosity(logging.INFO)
    app()
