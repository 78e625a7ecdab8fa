from dataclasses import dataclass
from typing import Tuple

Rect = Tuple[float, float, float, float]


@dataclass
class Detection:
    """
    Single detection in (x, y, width, height) form.

    The coordinate space depends on the stage: letterbox space after decoding,
    original image space after remapping.
    """

    x: float
    y: float
    width: float
    height: float
    score: float
    label: int = 0

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def rect(self) -> Rect:
        return self.x, self.y, self.width, self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x2, self.y2


@dataclass(frozen=True)
class GridCell:
    grid_x: int
    grid_y: int
    stride: int
