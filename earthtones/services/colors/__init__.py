"""
Earthtones Colors Module

Provides sRGB <-> CIE L*a*b* conversion, pixel sampling, clustering into
representative colors and swatch rendering for satellite imagery palettes.
"""
