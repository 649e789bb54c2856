from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class InvalidPeriod(ServiceError):
    """Academic year or term does not exist, or the term belongs to another year."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class NoGradeBand(ServiceError):
    """No configured band contains the score (gap in the grading scale)."""

    def __init__(self, curriculum: str, score: float) -> None:
        super().__init__(
            f"No grade band for score {score} in curriculum '{curriculum}'",
            status.HTTP_409_CONFLICT,
        )
        self.curriculum = curriculum
        self.score = score


class AmbiguousGradeBand(ServiceError):
    """More than one configured band contains the score (overlap in the grading scale)."""

    def __init__(self, curriculum: str, score: float, grades: list) -> None:
        super().__init__(
            f"Score {score} matches multiple grade bands {grades} in curriculum '{curriculum}'",
            status.HTTP_409_CONFLICT,
        )
        self.curriculum = curriculum
        self.score = score
        self.grades = grades


class InvalidPromotion(ServiceError):
    """Batch arguments that can never produce a valid transition."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)
