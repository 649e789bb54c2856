from typing import List, Optional

from pydantic import BaseModel, Field


class GradeLookupResponse(BaseModel):
    curriculum: str
    score: float
    grade: str
    remarks: Optional[str] = None


class ScaleValidationResponse(BaseModel):
    curriculum: str
    valid: bool
    pass_threshold: float = Field(..., description="Lowest min_score among passing bands")
    problems: List[str] = Field(default_factory=list)
