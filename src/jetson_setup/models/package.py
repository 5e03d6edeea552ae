"""Package specification models."""

from pydantic import BaseModel, Field


class PackageSpec(BaseModel):
    """System package specification."""
    name: str = Field(..., min_length=1, description="Package name")
