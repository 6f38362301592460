from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Label:
    """
    Class label owned by a model configuration. Detections only reference it.
    """

    id: int
    name: str
    color: Tuple[int, int, int] = (255, 255, 0)  # RGB


@dataclass(frozen=True)
class Detection:
    """
    Final detection in original image pixel coordinates (xyxy).
    """

    label: Label
    score: float
    x1: float
    y1: float
    x2: float
    y2: float

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def area(self) -> float:
        return self.width * self.height
