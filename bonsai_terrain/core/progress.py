"""
Deposit counters reported back to the progression layer.
"""

from dataclasses import dataclass, field
from typing import List

SIZE_CLASSES = (1, 2, 3)


def _tally() -> List[int]:
    return [0, 0, 0]


@dataclass
class ProgressTracker:
    """Running totals of deposits, aquatic placements and creature groups."""

    terraform_index: int = 0
    organic: int = 0
    inorganic: int = 0
    aquatic: int = 0
    creatures: int = 0
    sizes: List[int] = field(default_factory=_tally)
    organic_sizes: List[int] = field(default_factory=_tally)
    inorganic_sizes: List[int] = field(default_factory=_tally)
    aquatic_sizes: List[int] = field(default_factory=_tally)

    def record_deposit(self, size_class: int, is_organic: bool) -> None:
        self.terraform_index += 1
        if is_organic:
            self.organic += 1
            self.organic_sizes[size_class - 1] += 1
        else:
            self.inorganic += 1
            self.inorganic_sizes[size_class - 1] += 1
        self.sizes[size_class - 1] += 1

    def record_aquatic_instance(self) -> None:
        self.aquatic += 1

    def record_aquatic_deposit(self, size_class: int) -> None:
        self.aquatic_sizes[size_class - 1] += 1

    def record_creature_group(self) -> None:
        self.creatures += 1

    def snapshot(self) -> "ProgressTracker":
        """Independent copy, used to diff tallies across a deposit."""
        return ProgressTracker(
            terraform_index=self.terraform_index,
            organic=self.organic,
            inorganic=self.inorganic,
            aquatic=self.aquatic,
            creatures=self.creatures,
            sizes=list(self.sizes),
            organic_sizes=list(self.organic_sizes),
            inorganic_sizes=list(self.inorganic_sizes),
            aquatic_sizes=list(self.aquatic_sizes),
        )
