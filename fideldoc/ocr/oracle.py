"""
Language-model oracle interface.

The correction engine talks to a language model only through the Oracle
protocol: one prompt in, one text reply out. This module holds the
protocol, the proofreading prompt, the strict parser that turns a reply
into validated suggestion items, image-context preparation and an
optional adapter for Google Gemini.
"""

from __future__ import annotations

import base64
import binascii
import io
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol

from PIL import Image, UnidentifiedImageError

from fideldoc.config import DEFAULT_MAX_OUTPUT_TOKENS
from fideldoc.exceptions import ConfigurationError, OracleError, OracleResponseError

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_REASON = "የጽሁፍ ስህተት ማረሚያ"
DEFAULT_ORACLE_CONFIDENCE = 0.7

# Image types the Gemini API accepts inline; anything else is converted to PNG
SUPPORTED_IMAGE_TYPES = frozenset({"image/png", "image/jpeg", "image/webp"})

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.*)$", re.DOTALL)
FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

PROMPT_TEMPLATE = """You are an expert Amharic language proofreader with deep understanding of Ethiopian literature, culture, and context.

Your task: Analyze the OCR'd Amharic text and provide intelligent corrections based on:
1. SEMANTIC UNDERSTANDING - Understand the meaning and context of each sentence
2. LINGUISTIC PATTERNS - Apply Amharic grammar, spelling, and syntax rules
3. CONTEXTUAL COHERENCE - Ensure sentences flow logically and meaningfully
{image_rule}
CRITICAL RULES:
- Understand the MEANING of each line before suggesting corrections
- Fix OCR errors that break semantic meaning or grammatical structure
- Correct common Amharic OCR mistakes:
  * Similar-looking characters (ሀ/ኀ, ሰ/ሠ, ፀ/ጸ, አ/ዐ)
  * Missing or wrong vowel marks
  * Word boundary errors
  * Punctuation errors (። vs : or ፤ vs ;)
  * Mixed scripts (Latin letters appearing in Amharic words)
- Preserve proper names and technical terms
- Keep original meaning intact - never change the author's intent
{lexicon_hint}
COMMON AMHARIC OCR ERRORS TO WATCH FOR:
1. Character confusion: ሀ/ኀ, ሰ/ሠ, ፀ/ጸ, አ/ዐ, ተ/ቶ
2. Vowel mark errors: missing, wrong (ከ vs ኪ vs ኬ) or extra vowel marks
3. Word boundaries: words incorrectly merged or split ("የኢትዮጵያ" as "የኢት ዮጵያ")
4. Punctuation: ። confused with :, ፤ confused with ;
5. Mixed scripts: Latin letters inside Amharic words ("ሰላም" as "ሰላm")

Output format:
Return ONLY a JSON array of correction suggestions. Each suggestion should be:
{{
  "original": "the exact text to replace",
  "suggestion": "the corrected text",
  "reason": "explanation in Amharic about why this correction is needed",
  "confidence": 0.0-1.0 (how confident you are in this correction)
}}

Focus on HIGH-VALUE corrections that fix actual errors, not stylistic preferences.
Limit to {max_suggestions} most important corrections.

Text to proofread:
{text}"""

IMAGE_RULE = "4. IMAGE REFERENCE - Cross-check the text against the provided original image\n"


# =============================================================================
# DATA STRUCTURES
# =============================================================================


@dataclass(frozen=True)
class ImageContext:
    """Page image sent alongside the prompt."""

    data: bytes
    mime_type: str = "image/png"


@dataclass(frozen=True)
class OracleSuggestion:
    """One validated item of an oracle reply, not yet anchored to a document."""

    original: str
    suggestion: str
    reason: str
    confidence: float


class Oracle(Protocol):
    """
    Text-generation capability used for context-aware correction.

    Implementations raise any exception on failure; the suggestion
    generator treats every exception as a failed attempt.
    """

    def generate(
        self,
        prompt: str,
        image_context: ImageContext | None = None,
        *,
        model: str,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        timeout: float | None = None,
    ) -> str: ...


# =============================================================================
# PROMPT & PARSING
# =============================================================================


def build_correction_prompt(
    text: str,
    max_suggestions: int,
    lexicon_hint: str | None = None,
    with_image: bool = False,
) -> str:
    """
    Build the proofreading prompt.

    Args:
        text: Document text to proofread.
        max_suggestions: Upper bound stated in the prompt.
        lexicon_hint: Optional protected-term instruction.
        with_image: Whether a page image accompanies the prompt.

    Returns:
        Prompt string.
    """
    return PROMPT_TEMPLATE.format(
        image_rule=IMAGE_RULE if with_image else "",
        lexicon_hint=f"- {lexicon_hint}\n" if lexicon_hint else "",
        max_suggestions=max_suggestions,
        text=text,
    )


def extract_json_payload(reply: str) -> str:
    """
    Extract the JSON part of a model reply.

    Tries a fenced block, then the outermost brackets, then the reply
    with fence markers stripped.

    Raises:
        OracleResponseError: If no JSON-looking payload is found.
    """
    fence = FENCE_PATTERN.search(reply)
    if fence and fence.group(1):
        return fence.group(1).strip()

    # Outermost brackets, whichever kind opens first
    openings = [(reply.find(o), c) for o, c in (("[", "]"), ("{", "}")) if o in reply]
    for first, closer in sorted(openings):
        last = reply.rfind(closer)
        if last > first:
            return reply[first : last + 1].strip()

    cleaned = re.sub(r"^json\s*", "", reply.replace("```", ""), flags=re.IGNORECASE).strip()
    if cleaned.startswith(("[", "{")) and cleaned.endswith(("]", "}")):
        return cleaned
    raise OracleResponseError("No JSON payload found in oracle reply")


def _coerce_confidence(value: Any) -> float | None:
    if value is None:
        return DEFAULT_ORACLE_CONFIDENCE
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value or value < 0.0 or value > 1.0:  # NaN or out of range
        return None
    return float(value)


def parse_suggestion_payload(reply: str) -> list[OracleSuggestion]:
    """
    Parse and validate an oracle reply.

    The reply must hold a JSON array (optionally under a "suggestions"
    key). Items need string "original" and "suggestion" fields; the
    confidence, when present, must be a number in [0, 1]. Items that fail
    validation are dropped.

    Raises:
        OracleResponseError: If the reply has no parseable array.
    """
    payload = extract_json_payload(reply)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise OracleResponseError(f"Oracle reply is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("suggestions")
    if not isinstance(data, list):
        raise OracleResponseError("Oracle reply is not a JSON array")

    items = []
    for raw in data:
        if not isinstance(raw, dict):
            logger.warning("Dropping non-object suggestion item: %r", raw)
            continue
        original = raw.get("original")
        suggestion = raw.get("suggestion")
        if not isinstance(original, str) or not isinstance(suggestion, str):
            logger.warning("Dropping suggestion without string original/suggestion")
            continue
        if not original.strip() or not suggestion.strip() or original == suggestion:
            continue
        confidence = _coerce_confidence(raw.get("confidence"))
        if confidence is None:
            logger.warning("Dropping suggestion with invalid confidence: %r", raw.get("confidence"))
            continue
        reason = raw.get("reason")
        items.append(
            OracleSuggestion(
                original=original,
                suggestion=suggestion,
                reason=reason if isinstance(reason, str) and reason.strip() else DEFAULT_REASON,
                confidence=confidence,
            )
        )
    return items


# =============================================================================
# IMAGE CONTEXT
# =============================================================================


def prepare_image_context(image: ImageContext | bytes | str) -> ImageContext:
    """
    Normalize a page image for inline upload.

    Accepts raw bytes, a base64 data URL or an ImageContext. Formats the
    API does not accept inline (TIFF, BMP, GIF, ...) are converted to PNG
    with Pillow.

    Raises:
        OracleError: If the image cannot be decoded.
    """
    if isinstance(image, ImageContext):
        data, mime_type = image.data, image.mime_type.lower()
    elif isinstance(image, str):
        match = DATA_URL_PATTERN.match(image.strip())
        if not match:
            raise OracleError("Image context string must be a base64 data URL")
        try:
            data = base64.b64decode(match.group("data"), validate=True)
        except binascii.Error as e:
            raise OracleError(f"Invalid base64 image data: {e}") from e
        mime_type = match.group("mime").lower()
    else:
        data, mime_type = bytes(image), ""

    if mime_type == "image/jpg":
        mime_type = "image/jpeg"
    if mime_type in SUPPORTED_IMAGE_TYPES:
        return ImageContext(data=data, mime_type=mime_type)

    try:
        with Image.open(io.BytesIO(data)) as img:
            detected = Image.MIME.get(img.format or "", "")
            if detected in SUPPORTED_IMAGE_TYPES:
                return ImageContext(data=data, mime_type=detected)
            if img.mode not in ("RGB", "RGBA", "L"):
                img = img.convert("RGBA")
            buffer = io.BytesIO()
            img.save(buffer, format="PNG")
    except (UnidentifiedImageError, OSError) as e:
        raise OracleError(f"Cannot decode image context: {e}") from e

    logger.debug("Converted %s image context to PNG", mime_type or "untyped")
    return ImageContext(data=buffer.getvalue(), mime_type="image/png")


# =============================================================================
# GEMINI ADAPTER
# =============================================================================


class GeminiOracle:
    """
    Oracle backed by the Google Gen AI SDK.

    Requires the ``gemini`` extra (google-genai). The client is created
    lazily on first use.

    Example:
        >>> oracle = GeminiOracle(api_key="...")
        >>> reply = oracle.generate(prompt, model="gemini-2.5-pro")
    """

    def __init__(self, api_key: str, temperature: float = 0.1):
        if not api_key or not api_key.strip():
            raise ConfigurationError("GeminiOracle requires an API key")
        self.api_key = api_key.strip()
        self.temperature = temperature
        self._clients: dict[float | None, Any] = {}

    def _client(self, timeout: float | None) -> Any:
        if timeout not in self._clients:
            try:
                from google import genai
            except ImportError as e:
                raise ConfigurationError(
                    "google-genai is not installed; install fideldoc[gemini]"
                ) from e
            http_options = {"timeout": int(timeout * 1000)} if timeout else None
            self._clients[timeout] = genai.Client(api_key=self.api_key, http_options=http_options)
        return self._clients[timeout]

    def generate(
        self,
        prompt: str,
        image_context: ImageContext | None = None,
        *,
        model: str,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        timeout: float | None = None,
    ) -> str:
        client = self._client(timeout)
        from google.genai import types

        contents: list[Any] = [prompt]
        if image_context is not None:
            image = prepare_image_context(image_context)
            contents.append(types.Part.from_bytes(data=image.data, mime_type=image.mime_type))

        try:
            response = client.models.generate_content(
                model=model,
                contents=contents,
                config={
                    "response_mime_type": "application/json",
                    "temperature": self.temperature,
                    "top_p": 0.95,
                    "top_k": 40,
                    "max_output_tokens": max_output_tokens,
                },
            )
        except Exception as e:
            raise OracleError(f"Gemini request to {model} failed: {e}") from e

        text = response.text
        if not text:
            raise OracleResponseError(f"Gemini model {model} returned an empty reply")
        return text
