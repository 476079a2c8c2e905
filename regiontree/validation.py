"""
Shared validation for geometry inputs.

Provides the schema checks applied to a GeoJSON FeatureCollection and to
each of its features before rasterization.
"""
from __future__ import annotations

from typing import List, Optional

from .errors import SourceError

REQUIRED_FEATURE_KEYS = ("geometry", "properties")


def validate_feature_collection(doc, source_path: Optional[str] = None) -> List[dict]:
    """
    Validate that a parsed document is a FeatureCollection.

    Args:
        doc: Parsed JSON document
        source_path: Optional path to the document (for error messages)

    Returns:
        The list of features

    Raises:
        SourceError: if the document is not a FeatureCollection with a feature list
    """
    source = f" in {source_path}" if source_path else ""
    if not isinstance(doc, dict):
        raise SourceError(f"Expected a GeoJSON object{source}, got {type(doc).__name__}")
    if doc.get("type") != "FeatureCollection":
        raise SourceError(f"Expected a FeatureCollection{source}, got type {doc.get('type')!r}")
    features = doc.get("features")
    if not isinstance(features, list):
        raise SourceError(f"FeatureCollection{source} has no 'features' list")
    return features


def validate_feature(feature, index: int) -> None:
    """
    Validate that a feature carries both a geometry and a properties object.

    Args:
        feature: One entry of a FeatureCollection's ``features`` list
        index: Position of the feature in the collection (for error messages)

    Raises:
        SourceError: naming the feature index and the missing member
    """
    if not isinstance(feature, dict):
        raise SourceError(f"feature {index}: expected an object, got {type(feature).__name__}")
    for key in REQUIRED_FEATURE_KEYS:
        if feature.get(key) is None:
            raise SourceError(f"feature {index}: missing {key}")
    if not isinstance(feature["properties"], dict):
        raise SourceError(
            f"feature {index}: properties must be an object, got {type(feature['properties']).__name__}"
        )
