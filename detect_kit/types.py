from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Detection:
    """
    Labeled box in original-image pixel coordinates.

    Raw decodes are not guaranteed to satisfy x1 < x2 / y1 < y2.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    score: float
    class_id: int
    label: str

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2
