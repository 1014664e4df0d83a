"""
Vision module for inspection-image defect detection.

Provides:
- upload_image: Validate and store an inspection image
- LLMDefectDetector: Hosted vision-model defect detection
- InspectionAnalysis: Structured detection result
"""

from .image_upload import upload_image, validate_image, image_to_model_url
from .llm_defect_detector import (
    DetectedDefect,
    InspectionAnalysis,
    LLMDefectDetector,
    analyze_image,
    build_inspection_prompt,
    is_detector_available,
)

__all__ = [
    'upload_image',
    'validate_image',
    'image_to_model_url',
    'DetectedDefect',
    'InspectionAnalysis',
    'LLMDefectDetector',
    'analyze_image',
    'build_inspection_prompt',
    'is_detector_available',
]
