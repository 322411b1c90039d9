"""
Error kinds raised by the detection pipeline.

Every error is terminal for the current request: nothing in `detect_kit`
retries, and callers can tell the kinds apart by type.
"""

from __future__ import annotations


class DetectionError(Exception):
    """Base class for pipeline failures."""

    kind = "detection_error"


class DecodeError(DetectionError):
    """Input bytes are not a supported raster format."""

    kind = "decode_error"


class DimensionError(DetectionError):
    """Decoded image has zero width or height."""

    kind = "dimension_error"


class ModelLoadError(DetectionError):
    """Model artifact is missing or malformed."""

    kind = "model_load_error"


class InferenceError(DetectionError):
    """Inference engine rejected the input or failed internally."""

    kind = "inference_error"


class ShapeMismatchError(DetectionError):
    """Model output does not match the expected (4 + K, N) layout."""

    kind = "shape_mismatch"


class RenderError(DetectionError):
    kind = "render_error"
