"""
LLM Defect Detector - Vision-Model Quality Inspection.

Sends a product image to a hosted vision model and maps its JSON reply
into a structured inspection result (defects + overall quality score).

Usage:
    from qbot.vision.llm_defect_detector import analyze_image

    analysis = analyze_image(image_url)
    # Returns: InspectionAnalysis with quality_score, defects, error
"""

import os
import json
import logging
from typing import Optional, List
from dataclasses import dataclass, field

try:
    from openai import OpenAI
    HAS_OPENAI = True
except ImportError:
    HAS_OPENAI = False

from qbot.config import config
from qbot.backend.entities import DEFECT_TYPES, SEVERITIES, DefectType, Severity, humanize
from qbot.vision.image_upload import image_to_model_url

logger = logging.getLogger(__name__)

ANALYSIS_FAILED_MESSAGE = (
    "Analysis failed. Please make sure you uploaded a valid image "
    "(PNG, JPEG, WEBP, or GIF) and try again."
)


# ============ DATA STRUCTURES ============

@dataclass
class DetectedDefect:
    """A single defect reported by the vision model."""
    type: str  # one of DEFECT_TYPES
    severity: str  # critical, major, minor
    confidence: float  # 0-100
    description: str = ""
    root_cause: str = ""
    corrective_action: str = ""

    @property
    def label(self) -> str:
        return humanize(self.type).upper()

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "severity": self.severity,
            "confidence": self.confidence,
            "description": self.description,
            "root_cause": self.root_cause,
            "corrective_action": self.corrective_action,
        }


@dataclass
class InspectionAnalysis:
    """Structured result of analysing one inspection image."""
    quality_score: float = 0.0
    defects: List[DetectedDefect] = field(default_factory=list)
    error: str = ""
    raw_response: str = ""

    @property
    def ok(self) -> bool:
        return not self.error

    @property
    def passed(self) -> bool:
        return self.ok and not self.defects

    def to_dict(self) -> dict:
        return {
            "quality_score": self.quality_score,
            "defects": [d.to_dict() for d in self.defects],
        }


# ============ PROMPT ============

INSPECTION_PROMPT = """Analyze this manufacturing inspection image for quality defects.
Look for surface scratches, dents, discoloration, cracks, contamination, dimensional errors, incomplete assembly, burrs, voids, misalignment, or other defects.

For each defect found, provide:
- type (use one of: {defect_types})
- severity ({severities})
- confidence (0-100)
- description (detailed explanation)
- root_cause (potential cause)
- corrective_action (recommended fix)

Also calculate an overall quality_score (0-100) where 100 is perfect.

Return the results as a JSON object with:
{{
  "quality_score": number,
  "defects": array of defect objects (can be empty array if no defects found)
}}

The JSON must conform to this schema:
{schema}"""


INSPECTION_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "quality_score": {"type": "number"},
        "defects": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "type": {"type": "string"},
                    "severity": {"type": "string"},
                    "confidence": {"type": "number"},
                    "description": {"type": "string"},
                    "root_cause": {"type": "string"},
                    "corrective_action": {"type": "string"},
                },
            },
        },
    },
}


def build_inspection_prompt() -> str:
    """Render the defect-detection prompt with the JSON schema hint."""
    return INSPECTION_PROMPT.format(
        defect_types=", ".join(DEFECT_TYPES),
        severities=", ".join(SEVERITIES[:-1]) + f", or {SEVERITIES[-1]}",
        schema=json.dumps(INSPECTION_RESPONSE_SCHEMA, indent=2),
    )


def strip_code_fence(raw_content: str) -> str:
    """Remove a markdown code fence the model may wrap JSON in."""
    content = raw_content.strip()
    if content.startswith("```"):
        lines = content.split("\n")
        content = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])
    return content


def _clamp_percent(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(100.0, number))


def _normalize_defect(data: dict) -> DetectedDefect:
    defect_type = str(data.get("type") or "").strip().lower().replace(" ", "_")
    if defect_type not in DEFECT_TYPES:
        defect_type = DefectType.OTHER.value

    severity = str(data.get("severity") or "").strip().lower()
    if severity not in SEVERITIES:
        severity = Severity.MAJOR.value

    try:
        confidence = float(data.get("confidence", 0))
    except (TypeError, ValueError):
        confidence = 0.0
    # Some models answer with a 0-1 fraction
    if 0 < confidence <= 1:
        confidence *= 100

    return DetectedDefect(
        type=defect_type,
        severity=severity,
        confidence=round(_clamp_percent(confidence), 1),
        description=str(data.get("description") or ""),
        root_cause=str(data.get("root_cause") or ""),
        corrective_action=str(data.get("corrective_action") or ""),
    )


# ============ DETECTOR CLASS ============

class LLMDefectDetector:
    """
    Vision-model defect detector.

    Returns errors inside the InspectionAnalysis rather than raising,
    so the UI can show them as an inline banner.
    """

    def __init__(self, model: Optional[str] = None):
        self.client = None
        llm_cfg = config["llm"]
        self.model = model or llm_cfg["model"]
        self.temperature = llm_cfg["temperature"]
        self.max_tokens = llm_cfg["max_tokens"]

        if HAS_OPENAI:
            api_key = os.getenv("OPENAI_API_KEY")
            if api_key:
                self.client = OpenAI(api_key=api_key)

    @property
    def is_available(self) -> bool:
        """Check if the detector is ready to use."""
        return self.client is not None

    def analyze(self, image_url: str) -> InspectionAnalysis:
        """
        Detect defects in an inspection image.

        Args:
            image_url: Remote URL or local path of the uploaded image

        Returns:
            InspectionAnalysis; `error` is set when analysis failed
        """
        if not self.is_available:
            logger.warning("Vision model unavailable: OPENAI_API_KEY not set")
            return InspectionAnalysis(
                error=ANALYSIS_FAILED_MESSAGE,
                raw_response="Error: OpenAI API not available. Please check API key.",
            )

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": build_inspection_prompt()},
                            {
                                "type": "image_url",
                                "image_url": {"url": image_to_model_url(image_url)},
                            },
                        ],
                    }
                ],
                response_format={"type": "json_object"},
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            raw_content = response.choices[0].message.content or ""
        except Exception as e:
            logger.error("Analysis failed: %s", e)
            return InspectionAnalysis(
                error=ANALYSIS_FAILED_MESSAGE,
                raw_response=f"Analysis failed: {e}",
            )

        return self._parse_response(raw_content)

    def _parse_response(self, raw_content: str) -> InspectionAnalysis:
        """Parse the model's reply into an InspectionAnalysis."""
        try:
            data = json.loads(strip_code_fence(raw_content))
        except json.JSONDecodeError:
            logger.warning("Vision model returned non-JSON content")
            return InspectionAnalysis(error=ANALYSIS_FAILED_MESSAGE, raw_response=raw_content)

        if not isinstance(data, dict):
            return InspectionAnalysis(error=ANALYSIS_FAILED_MESSAGE, raw_response=raw_content)

        raw_defects = data.get("defects")
        if raw_defects is None:
            raw_defects = []
        if not isinstance(raw_defects, list):
            logger.warning("Vision model returned defects as %s", type(raw_defects).__name__)
            return InspectionAnalysis(error=ANALYSIS_FAILED_MESSAGE, raw_response=raw_content)

        defects = [_normalize_defect(d) for d in raw_defects if isinstance(d, dict)]
        return InspectionAnalysis(
            quality_score=round(_clamp_percent(data.get("quality_score")), 1),
            defects=defects,
            raw_response=raw_content,
        )


# ============ CONVENIENCE FUNCTIONS ============

_detector_instance: Optional[LLMDefectDetector] = None


def get_detector() -> LLMDefectDetector:
    """Get or create the detector singleton."""
    global _detector_instance
    if _detector_instance is None:
        _detector_instance = LLMDefectDetector()
    return _detector_instance


def analyze_image(image_url: str) -> InspectionAnalysis:
    """
    Main API: detect defects in an uploaded image.

    Example:
        >>> analysis = analyze_image("data/uploads/3f2a_part.png")
        >>> analysis.quality_score, len(analysis.defects)
        (82.0, 2)
    """
    return get_detector().analyze(image_url)


def is_detector_available() -> bool:
    """Check if the vision model is configured."""
    return get_detector().is_available
