"""Build generateContent request bodies from generation requests."""

import re
from dataclasses import dataclass, field

from loguru import logger

from stagegen.config import settings
from stagegen.models.model import ResolvedModel
from stagegen.models.request import (
    Content,
    GenerateContentRequest,
    GenerationConfig,
    GenerationRequest,
    ImageConfig,
    InlineData,
    Part,
)


DATA_URI_PATTERN = re.compile(r"^data:([\w.+-]+/[\w.+-]+);base64,(.+)$")

CONSISTENCY_PROMPT_TEMPLATE = """
CRITICAL REQUIREMENTS - CHARACTER CONSISTENCY

Reference Images Information:
- The FIRST image is the Scene/Environment reference.
- Any subsequent images are Character references (Base Look or Variation).

Task:
Generate a cinematic shot matching this prompt: "{prompt}".

ABSOLUTE REQUIREMENTS (NON-NEGOTIABLE):
1. Scene Consistency:
   - STRICTLY maintain the visual style, lighting, and environment from the scene reference.

2. Character Consistency - HIGHEST PRIORITY:
   If characters are present in the prompt, they MUST be IDENTICAL to the character reference images:
   - Facial Features: Eyes (color, shape, size), nose structure, mouth shape, facial contours must be EXACTLY the same
   - Hairstyle & Hair Color: Length, color, texture, and style must be PERFECTLY matched
   - Clothing & Outfit: Style, color, material, and accessories must be IDENTICAL
   - Body Type: Height, build, proportions must remain consistent

DO NOT create variations or interpretations of the character - STRICT REPLICATION ONLY!
Character appearance consistency is THE MOST IMPORTANT requirement!
"""


@dataclass
class ReferenceImageReport:
    """Outcome of decoding a list of reference images."""

    decoded: list[InlineData] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)


def build_prompt(prompt: str, reference_count: int) -> str:
    """Wrap the prompt in the consistency directive when references are attached."""
    if reference_count <= 0:
        return prompt
    return CONSISTENCY_PROMPT_TEMPLATE.format(prompt=prompt)


def decode_reference_image(value: str) -> InlineData | None:
    """Decode a `data:<mime>;base64,<payload>` URI, or None if malformed."""
    match = DATA_URI_PATTERN.match(value or "")
    if not match:
        return None
    return InlineData(mimeType=match.group(1), data=match.group(2))


def decode_reference_images(values: tuple[str, ...] | list[str]) -> ReferenceImageReport:
    report = ReferenceImageReport()
    for index, value in enumerate(values):
        inline_data = decode_reference_image(value)
        if inline_data is None:
            report.skipped.append(index)
        else:
            report.decoded.append(inline_data)

    if report.skipped:
        logger.warning(f"Skipped malformed reference images at positions {report.skipped}")
    return report


def resolve_aspect_ratio(request: GenerationRequest, model: ResolvedModel) -> str:
    return request.aspect_ratio or model.default_aspect_ratio


def build_request_body(request: GenerationRequest, model: ResolvedModel) -> dict:
    """Build the JSON body for a generateContent call."""
    report = decode_reference_images(request.reference_images)

    # Prompt first, then references in their original order
    parts = [Part(text=build_prompt(request.prompt, len(request.reference_images)))]
    parts.extend(Part(inlineData=inline_data) for inline_data in report.decoded)

    generation_config = GenerationConfig(responseModalities=["TEXT", "IMAGE"])
    aspect_ratio = resolve_aspect_ratio(request, model)
    if aspect_ratio != settings.default_aspect_ratio:
        generation_config.imageConfig = ImageConfig(aspectRatio=aspect_ratio)

    body = GenerateContentRequest(
        contents=[Content(role="user", parts=parts)],
        generationConfig=generation_config,
    )
    return body.model_dump(exclude_none=True)


def build_headers(api_key: str) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
        "Accept": "*/*",
    }
