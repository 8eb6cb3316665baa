from __future__ import annotations

from pydantic import BaseModel, Field


class ResponsiveVariant(BaseModel):
    """One generated width of a breakpoint rendition."""

    url: str = Field(..., description="Public or temporary URL of the variant")
    width: int = Field(..., description="Pixel width encoded in the file name", examples=[480])


class PictureSource(BaseModel):
    """A ``<source>`` entry for one breakpoint and format."""

    breakpoint: str = Field(..., description="Breakpoint key", examples=["md"])
    media: str = Field(..., description="CSS media condition", examples=["(min-width: 768px) and (max-width: 1023px)"])
    type: str = Field(..., description="MIME type of the files in srcset", examples=["image/webp"])
    srcset: str = Field(..., description="Comma separated 'url {width}w' candidates")


class PictureData(BaseModel):
    """Everything a template needs to render a ``<picture>`` element."""

    image_id: str
    src: str = Field(..., description="Fallback URL, the smallest breakpoint rendition")
    alt: str | None = Field(None, description="Alt text for the requested locale")
    sources: list[PictureSource] = Field(default_factory=list)
