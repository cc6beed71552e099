"""Value alignment schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field


class AlignmentRequest(BaseModel):
    response: str


class RecommendationSchema(BaseModel):
    type: str
    suggestion: str
    element: Optional[str] = None
    concern: Optional[str] = None
    goal: Optional[str] = None


class MisalignmentSchema(BaseModel):
    type: str
    description: str


class AlignmentResultResponse(BaseModel):
    score: int
    aligned_elements: List[str] = Field(default_factory=list, alias="alignedElements")
    misalignments: List[MisalignmentSchema] = Field(default_factory=list)
    recommendations: List[RecommendationSchema] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class EnhanceRequest(BaseModel):
    response: str
    # Recommendations from a previous score call; rescored when omitted
    recommendations: Optional[List[RecommendationSchema]] = None


class EnhanceResponse(BaseModel):
    response: str
    score: int
