"""Swap file specification models."""

from pydantic import BaseModel, Field


class SwapSpec(BaseModel):
    """Swap file specification."""
    path: str = Field(..., description="Absolute path of the swap file")
    size_gb: int = Field(default=16, ge=1)

    @property
    def size_arg(self) -> str:
        """Size argument understood by fallocate."""
        return f"{self.size_gb}G"
