from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class WorldSize:
    width: float
    height: float

    def validate(self) -> "WorldSize":
        if not self.width > 0 or not self.height > 0:
            raise ValueError(f"World bounds must be positive, got {self.width}x{self.height}")
        return self
