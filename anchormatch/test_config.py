from __future__ import annotations

import pytest

from anchormatch.config import MatchingParams
from anchormatch.core.types import FeatureShape


def test_defaults():
    params = MatchingParams.get_default(num_classes=20)

    assert params.iou_threshold == 0.4
    assert params.sentinel == 1.99
    assert params.grid_shape == FeatureShape(4, 4)
    assert params.background_class == 20
    assert params.validate() is params


@pytest.mark.parametrize(
    "overrides",
    [
        dict(num_classes=0),
        dict(sentinel=1.0),
        dict(iou_threshold=1.0),
        dict(iou_threshold=-0.1),
        dict(grid_shape=FeatureShape(width=4, height=0)),
    ],
)
def test_invalid(overrides):
    params = MatchingParams.get_default(num_classes=3)._replace(**overrides)

    with pytest.raises(ValueError):
        params.validate()
