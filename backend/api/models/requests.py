"""
Pydantic request models for API endpoints.
"""
from pydantic import BaseModel, Field


class AnalysisRequest(BaseModel):
    """Request model for analysing pasted lecture text."""
    text: str = Field(..., min_length=1, description="Raw lecture text")
    source_name: str = Field(default="pasted text", description="Label shown for the source")


class OptionSelectRequest(BaseModel):
    """Request model for selecting a quiz option."""
    option: str = Field(..., description="Option text, exactly as presented")
