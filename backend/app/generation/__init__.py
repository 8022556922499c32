"""Roadmap generation: prompts, extraction, validation and the service client."""

from app.generation.client import GenerationClient, get_generation_client
from app.generation.extractor import ExtractionResult, extract_json
from app.generation.validator import ValidationResult, validate_roadmap

__all__ = [
    "GenerationClient",
    "get_generation_client",
    "ExtractionResult",
    "extract_json",
    "ValidationResult",
    "validate_roadmap",
]
