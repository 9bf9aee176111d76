"""
Earthtones Error Taxonomy
Exceptions raised by the palette pipeline and its collaborators.
"""


class EarthtonesError(Exception):
    """Base class for all earthtones failures."""
    pass


class InvalidParameter(EarthtonesError, ValueError):
    """Caller supplied a bad zoom, method, provider or sampling rate."""
    pass


class InvalidClusterCount(EarthtonesError, ValueError):
    """Requested number of colors is outside 1..number of samples."""
    pass


class InsufficientData(EarthtonesError, RuntimeError):
    """No usable pixels remain after filtering the retrieved imagery."""
    pass


class RetrievalFailure(EarthtonesError, RuntimeError):
    """Tile provider or network error while fetching imagery."""
    pass
