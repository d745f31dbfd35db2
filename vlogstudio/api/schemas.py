"""
Request bodies for the HTTP interface.

Field names follow the browser client (camelCase aliases); every field
except the prompt-like one has a default.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GenerateImagesRequest(CamelModel):
    prompt: str = ""
    count: Optional[int] = None
    style: str = "vibrant"
    aspect_ratio: str = Field(default="9:16", alias="aspectRatio")
    model: str = Field(default="balanced", description="Quality tier: cheap, balanced or best")


class GenerateVideoRequest(CamelModel):
    prompt: str = ""
    style: str = "vibrant"
    aspect_ratio: Optional[str] = Field(default=None, alias="aspectRatio")
    model: str = Field(default="balanced", description="Quality tier: cheap, balanced or best")
    duration: Optional[int] = Field(default=None, ge=1, le=60)
    format: Optional[str] = Field(default=None, description="short (9:16) or long (16:9)")

    def resolved_aspect_ratio(self) -> str:
        """Explicit aspect ratio wins; otherwise derive it from the format."""
        if self.aspect_ratio:
            return self.aspect_ratio
        return "16:9" if self.format == "long" else "9:16"


class ViralIdeasRequest(CamelModel):
    niche: str = "telugu culture"
    count: int = Field(default=5, ge=1, le=20)


class ViralScriptRequest(CamelModel):
    idea: str = ""
    format: str = "short"
    image_count: int = Field(default=8, alias="imageCount")


class GenerateMetadataRequest(CamelModel):
    topic: str = ""
    format: str = "short"
    language: str = "both"
