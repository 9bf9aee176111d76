"""Earthtones services: tile retrieval, color pipeline and palette facade."""
