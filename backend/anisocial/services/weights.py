from typing import Dict

WEIGHT_NORMAL = 1
WEIGHT_BOOSTED = 2


class WeightTable:
    """Influence multiplier per follower; anyone without an entry counts as WEIGHT_NORMAL."""

    def __init__(self):
        self._weights: Dict[int, int] = {}
        self.version = 0

    def get(self, follower_id: int) -> int:
        return self._weights.get(follower_id, WEIGHT_NORMAL)

    def toggle(self, follower_id: int) -> int:
        new_weight = WEIGHT_BOOSTED if self.get(follower_id) == WEIGHT_NORMAL else WEIGHT_NORMAL
        self._weights[follower_id] = new_weight
        self.version += 1
        return new_weight

    def as_dict(self) -> Dict[int, int]:
        return dict(self._weights)
