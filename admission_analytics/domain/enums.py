"""Enumerations for admission record fields."""

from enum import Enum
from typing import Optional


class AgeGroup(str, Enum):
    """Ordered age buckets used for cohort reporting.

    Cut points are exact: 17 is a Minor, 18 a Young Adult, 35 a Young Adult,
    36 Middle Age, 55 Middle Age, 56 Senior, 70 Senior and 71 Elderly.
    """
    MINOR = "Minor (0-17)"
    YOUNG_ADULT = "Young Adult (18-35)"
    MIDDLE_AGE = "Middle Age (36-55)"
    SENIOR = "Senior (56-70)"
    ELDERLY = "Elderly (70+)"

    @property
    def sort_order(self) -> int:
        """Display position (1-based) of this bucket."""
        return list(AgeGroup).index(self) + 1

    @property
    def lower_bound(self) -> int:
        """Smallest age (inclusive) that falls into this bucket."""
        return _AGE_GROUP_LOWER_BOUNDS[self]

    @classmethod
    def from_label(cls, label: Optional[str]) -> Optional['AgeGroup']:
        """Look up a bucket by its label, returning None for unknown labels."""
        if label is None:
            return None
        for group in cls:
            if group.value == label:
                return group
        return None


_AGE_GROUP_LOWER_BOUNDS = {
    AgeGroup.MINOR: 0,
    AgeGroup.YOUNG_ADULT: 18,
    AgeGroup.MIDDLE_AGE: 36,
    AgeGroup.SENIOR: 56,
    AgeGroup.ELDERLY: 71,
}

#: Labels in display order
AGE_GROUP_ORDER = [group.value for group in AgeGroup]


class AdmissionType(str, Enum):
    """Admission types found in the dataset."""
    EMERGENCY = "Emergency"
    ELECTIVE = "Elective"
    URGENT = "Urgent"


class TestResult(str, Enum):
    """Test result outcomes."""
    __test__ = False  # not a pytest class

    NORMAL = "Normal"
    ABNORMAL = "Abnormal"
    INCONCLUSIVE = "Inconclusive"


class Gender(str, Enum):
    """Recorded patient gender."""
    MALE = "Male"
    FEMALE = "Female"
