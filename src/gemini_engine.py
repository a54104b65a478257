"""
AI Engine for the Triage Dashboard

Uses Generative AI (Gemini) for:
- reading triage counts off a photographed report
- the assistant chat (optional web search and extended reasoning)
- image generation and editing in the studio tab
- a one-sentence workload insight for the dashboard
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from dotenv import load_dotenv
from google import genai
from google.genai import types

load_dotenv()

logger = logging.getLogger(__name__)


# API Key handling
def get_api_key():
    return os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")


# Models per task
MODEL_FAST = "gemini-3-flash-preview"
MODEL_FAST_LITE = "gemini-flash-lite-latest"
MODEL_PRO_THINKING = "gemini-3-pro-preview"
MODEL_IMAGE_GEN_PRO = "gemini-3-pro-image-preview"
MODEL_IMAGE_EDIT_FLASH = "gemini-2.5-flash-image"

THINKING_BUDGET = 32768
IMAGE_SIZES = ("1K", "2K", "4K")
IMAGE_ASPECT_RATIO = "16:9"

INSIGHT_FALLBACK = "Não foi possível gerar o insight."
DEFAULT_SOURCE_TITLE = "Fonte"

GREETING = (
    "Olá! Sou o assistente Gemini. Posso ajudar com protocolos de triagem, "
    "analisar tendências ou buscar informações médicas atualizadas."
)

# Prompt for report photos
IMAGE_EXTRACTION_PROMPT = """
Analise esta imagem de um relatório ou anotação médica.
Extraia dados de triagem (quantidade de pacientes por cor de risco: Vermelho, Laranja, Amarelo, Verde, Azul) para um dia específico.
Retorne APENAS um objeto JSON com o seguinte formato, sem markdown:
{
  "dia": "YYYY-MM-DD",
  "vermelho": 0,
  "laranja": 0,
  "amarelo": 0,
  "verde": 0,
  "azul": 0
}
"""

EXTRACTION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "dia": {"type": "STRING", "description": "Data do plantão no formato YYYY-MM-DD"},
        "vermelho": {"type": "INTEGER"},
        "laranja": {"type": "INTEGER"},
        "amarelo": {"type": "INTEGER"},
        "verde": {"type": "INTEGER"},
        "azul": {"type": "INTEGER"},
    },
    "required": ["dia", "vermelho", "laranja", "amarelo", "verde", "azul"],
}


@dataclass
class ChatReply:
    """
    Assistant answer.

    Attributes:
        text: Answer text
        sources: Grounding citations as {"uri", "title"} dicts
        thinking: Whether extended reasoning was used
    """
    text: str
    sources: List[Dict[str, str]] = field(default_factory=list)
    thinking: bool = False


def _client() -> "genai.Client":
    # New client per request so a key changed in .env is picked up
    return genai.Client(api_key=get_api_key())


def _first_image(response: Any) -> Optional[bytes]:
    """Return the first inline image of a response, if any."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates or candidates[0].content is None:
        return None
    for part in candidates[0].content.parts or []:
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            return inline.data
    return None


def extract_sources(response: Any) -> List[Dict[str, str]]:
    """
    Collect (uri, title) citations from a grounded response.

    Web and maps chunks are both read; chunks without a URI are dropped.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    sources = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        maps = getattr(chunk, "maps", None)
        uri = getattr(web, "uri", None) or getattr(maps, "uri", None) or ""
        title = getattr(web, "title", None) or getattr(maps, "title", None) or DEFAULT_SOURCE_TITLE
        if uri:
            sources.append({"uri": uri, "title": title})
    return sources


def build_history(messages: Sequence[Dict[str, Any]]) -> List[types.Content]:
    """
    Convert UI chat messages ({"role", "text"}) into SDK history.

    Leading assistant turns (the greeting) are skipped, the API expects
    the conversation to open with the user.
    """
    history = []
    for msg in messages:
        text = (msg.get("text") or "").strip()
        role = "model" if msg.get("role") == "model" else "user"
        if not text or (not history and role == "model"):
            continue
        history.append(types.Content(role=role, parts=[types.Part.from_text(text=text)]))
    return history


def analyze_triage_image(image_bytes: bytes, mime_type: str) -> Optional[str]:
    """
    Send a report photo to the model and get the extracted counts.

    Args:
        image_bytes: Raw image data
        mime_type: MIME type of the image (image/jpeg, image/png, ...)

    Returns:
        Raw JSON text with "dia" and the five category counts, or None
        if the call failed. Parsing is left to
        data_loader.parse_extracted_record.
    """
    try:
        response = _client().models.generate_content(
            model=MODEL_PRO_THINKING,
            contents=[
                types.Content(
                    parts=[
                        types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                        types.Part.from_text(text=IMAGE_EXTRACTION_PROMPT),
                    ]
                )
            ],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=EXTRACTION_SCHEMA,
            ),
        )
        return response.text or "{}"
    except Exception:
        logger.exception("Error analyzing image")
        return None


def generate_image(prompt: str, size: str = "1K") -> Optional[bytes]:
    """
    Generate a 16:9 image from a prompt.

    Returns:
        PNG bytes, or None if the call failed or returned no image
    """
    if size not in IMAGE_SIZES:
        raise ValueError(f"Image size must be one of {IMAGE_SIZES}, got {size!r}")

    try:
        response = _client().models.generate_content(
            model=MODEL_IMAGE_GEN_PRO,
            contents=prompt,
            config=types.GenerateContentConfig(
                image_config=types.ImageConfig(
                    aspect_ratio=IMAGE_ASPECT_RATIO,
                    image_size=size,
                ),
            ),
        )
        return _first_image(response)
    except Exception:
        logger.exception("Error generating image")
        return None


def edit_image(image_bytes: bytes, mime_type: str, prompt: str) -> Optional[bytes]:
    """Apply a text instruction to an uploaded image."""
    try:
        response = _client().models.generate_content(
            model=MODEL_IMAGE_EDIT_FLASH,
            contents=[
                types.Content(
                    parts=[
                        types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                        types.Part.from_text(text=prompt),
                    ]
                )
            ],
        )
        return _first_image(response)
    except Exception:
        logger.exception("Error editing image")
        return None


def chat_with_gemini(
    message: str,
    history: Sequence[Dict[str, Any]],
    use_search: bool = False,
    use_thinking: bool = False,
) -> Optional[ChatReply]:
    """
    Send one chat turn.

    Args:
        message: New user message
        history: Earlier UI messages ({"role": "user"|"model", "text": ...})
        use_search: Ground the answer with Google Search
        use_thinking: Use the pro model with an extended thinking budget

    Returns:
        ChatReply with text and citations, or None if the call failed
    """
    model = MODEL_PRO_THINKING if use_thinking else MODEL_FAST

    config_kwargs: Dict[str, Any] = {}
    if use_search:
        config_kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]
    if use_thinking:
        config_kwargs["thinking_config"] = types.ThinkingConfig(thinking_budget=THINKING_BUDGET)

    try:
        chat = _client().chats.create(
            model=model,
            history=build_history(history),
            config=types.GenerateContentConfig(**config_kwargs),
        )
        response = chat.send_message(message)
        return ChatReply(
            text=response.text or "",
            sources=extract_sources(response),
            thinking=use_thinking,
        )
    except Exception:
        logger.exception("Error in chat")
        return None


def get_fast_insight(data_context: str) -> str:
    """One-sentence executive summary of the current workload."""
    try:
        response = _client().models.generate_content(
            model=MODEL_FAST_LITE,
            contents=(
                f"Com base nestes dados de triagem hospitalar: {data_context}. "
                "Dê um resumo executivo de uma frase sobre a carga de trabalho atual."
            ),
        )
        return response.text or INSIGHT_FALLBACK
    except Exception:
        logger.exception("Error getting fast insight")
        return INSIGHT_FALLBACK


def is_gemini_available() -> bool:
    """Check if AI API is configured."""
    return bool(get_api_key())


def get_availability_message() -> str:
    """Get a user-friendly message about AI availability."""
    if not get_api_key():
        return "GEMINI_API_KEY not set. Add it to your .env file or environment."
    return "AI Engine is ready"
