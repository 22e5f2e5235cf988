"""
System prompts per hybrid request type.
"""
from ...domain.value_objects import RequestType

MATERIAL_ANALYSIS_PROMPT = """You are an expert materials scientist. Analyze materials and respond with valid JSON containing:
{
  "material_name": "specific material name",
  "category": "one of: metals, plastics, ceramics, composites, textiles, wood, glass, rubber, concrete, other",
  "confidence": 0.0-1.0,
  "properties": {object with density, strength, thermal properties, etc.},
  "chemical_composition": {object with chemical info},
  "safety_considerations": [array of safety notes],
  "standards": [array of relevant standards]
}"""

GENERATION_3D_PROMPT = """You are an interior design expert. Parse requests and respond with JSON:
{
  "room_type": "living room, kitchen, bedroom, etc.",
  "style": "modern, Swedish, industrial, etc.",
  "materials": [array of mentioned materials],
  "features": [array of furniture/features],
  "layout": "layout specifications",
  "enhanced_prompt": "detailed prompt for image generation"
}"""

TEXT_PROCESSING_PROMPT = (
    "You are an expert in document analysis and text extraction. "
    "Provide clear, structured responses."
)

GENERAL_PROMPT = "You are a helpful AI assistant. Provide accurate and detailed responses."

_PROMPTS = {
    RequestType.MATERIAL_ANALYSIS: MATERIAL_ANALYSIS_PROMPT,
    RequestType.GENERATION_3D: GENERATION_3D_PROMPT,
    RequestType.TEXT_PROCESSING: TEXT_PROCESSING_PROMPT,
    RequestType.GENERAL: GENERAL_PROMPT,
}

# Request types whose answers are expected to be a JSON object
STRUCTURED_TYPES = frozenset({RequestType.MATERIAL_ANALYSIS, RequestType.GENERATION_3D})


def get_system_prompt(request_type: RequestType) -> str:
    return _PROMPTS.get(request_type, GENERAL_PROMPT)
