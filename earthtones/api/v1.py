"""
Earthtones v1 API Routes
Implements the /v1/earthtones palette endpoint.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from earthtones.config import config
from earthtones.errors import (
    InsufficientData,
    InvalidClusterCount,
    InvalidParameter,
    RetrievalFailure,
)
from earthtones.schemas import EarthtonesResponse, ErrorResponse
from earthtones.services.colors.clustering import ClusterMethod
from earthtones.services.colors.swatches import render_result_b64
from earthtones.services.palette import get_earthtones
from earthtones.services.tiles import Provider, TileFetcher
from earthtones.utils.ids import generate_request_id
from earthtones.utils.logging import get_logger

router = APIRouter(prefix="/v1", tags=["Earthtones"])


def get_tile_fetcher() -> TileFetcher:
    """Tile fetcher dependency; overridden in tests."""
    return TileFetcher()


@router.get(
    "/earthtones",
    response_model=EarthtonesResponse,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Earth-tone palette",
    description="Derive a color palette from satellite imagery around a coordinate",
)
def earthtones(
    latitude: float = Query(..., description="Latitude of the image centre"),
    longitude: float = Query(..., description="Longitude of the image centre"),
    zoom: float = Query(11, description="Zoom level, 0 (world) to 13 (detail)"),
    number_of_colors: int = Query(3, ge=1, le=config.MAX_COLORS, description="Palette size"),
    method: str = Query("MEDOID", description="Clustering method: MEDOID or CENTROID"),
    sample_rate: int = Query(config.DEFAULT_SAMPLE_RATE, ge=1, description="Keep every n-th pixel"),
    provider: str = Query("default", description="Imagery provider"),
    seed: Optional[int] = Query(None, description="Random seed for reproducible palettes"),
    include_map: bool = Query(False, description="Include a PNG of the imagery and palette"),
    sort_lightness: bool = Query(False, description="Order colors by ascending lightness"),
    fetcher: TileFetcher = Depends(get_tile_fetcher),
):
    request_id = generate_request_id()
    log = get_logger()
    log.info("Earthtones request", extra={
        "request_id": request_id, "latitude": latitude, "longitude": longitude,
        "zoom": zoom, "k": number_of_colors, "method": method,
    })

    try:
        result = get_earthtones(
            latitude=latitude,
            longitude=longitude,
            zoom=zoom,
            number_of_colors=number_of_colors,
            method=method,
            sample_rate=sample_rate,
            include_map=include_map,
            provider=provider,
            random_state=seed if seed is not None else config.DEFAULT_SEED,
            fetcher=fetcher,
            sort_lightness=sort_lightness,
        )
    except (InvalidParameter, InvalidClusterCount) as e:
        log.warning(str(e), extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))
    except InsufficientData as e:
        log.warning(str(e), extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))
    except RetrievalFailure as e:
        log.error(str(e), extra={"request_id": request_id})
        raise HTTPException(status_code=502, detail=str(e))

    if result.kind == "bundle":
        colors = result.palette.colors
        provider_name = result.raster.provider.value
        map_png_b64 = render_result_b64(result)
    else:
        colors = result.colors
        provider_name = Provider.parse(provider).value
        map_png_b64 = None

    return EarthtonesResponse(
        palette=colors,
        method=ClusterMethod.parse(method).value,
        provider=provider_name,
        zoom=zoom,
        map_png_b64=map_png_b64,
    )
