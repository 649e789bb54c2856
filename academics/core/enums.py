from enum import Enum


class EnrollmentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TRANSFERRED = "TRANSFERRED"
    PROMOTED = "PROMOTED"


class Curriculum(str, Enum):
    EIGHT_FOUR_FOUR = "8-4-4"
    CBC = "CBC"
    ECDE = "ECDE"


class PerformanceTrend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


INSUFFICIENT_SAMPLE = "insufficient_sample"
