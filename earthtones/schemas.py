"""
Earthtones Schemas
Pydantic models for palette results and HTTP request/response validation.
"""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from earthtones.services.tiles import Raster

HEX_PATTERN = r"^#[0-9A-F]{6}$"

HexColor = Annotated[str, Field(pattern=HEX_PATTERN)]


# ============================================================================
# PIPELINE RESULTS
# ============================================================================

class Palette(BaseModel):
    """Ordered palette in the clustering algorithm's output order."""
    kind: Literal["palette"] = "palette"
    colors: List[HexColor] = Field(..., min_length=1, description="Uppercase #RRGGBB colors")


class PaletteBundle(BaseModel):
    """Palette together with the raster it was derived from."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: Literal["bundle"] = "bundle"
    palette: Palette
    raster: Raster


PaletteResult = Annotated[Union[Palette, PaletteBundle], Field(discriminator="kind")]


# ============================================================================
# HTTP SCHEMAS
# ============================================================================

class EarthtonesResponse(BaseModel):
    """Response for the earthtones endpoint."""
    palette: List[HexColor] = Field(..., description="Colors as #RRGGBB")
    method: str = Field(..., description="Clustering method used")
    provider: str = Field(..., description="Imagery provider")
    zoom: float = Field(..., description="Requested zoom level")
    map_png_b64: Optional[str] = Field(
        None,
        description="Base64-encoded PNG of the source imagery above the palette strip"
    )


class HealthResponse(BaseModel):
    """Health check response."""
    ok: bool = Field(True, description="Service health status")
    version: str = Field(..., description="Service version")
    service: str = Field("earthtones", description="Service name")


class ErrorResponse(BaseModel):
    """Error response."""
    detail: str = Field(..., description="Error message")
