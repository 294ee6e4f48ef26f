import base64
import logging
import threading
import time
from enum import Enum

from google import genai
from google.genai import types

from diga.config import (
    GEMINI_API_KEY,
    GEMINI_COOLDOWN_SECONDS,
    GEMINI_IMAGE_MODEL,
    GEMINI_MODEL,
)
from diga.constants.prompts import DEFAULT_QUOTE, IMAGE_PROMPT, QUOTE_PROMPT
from diga.schemas import RESPONSE_SCHEMA

logger = logging.getLogger(__name__)

# Last-resort markers when the transport gives no structured status code.
_RATE_LIMIT_MARKERS = ("RESOURCE_EXHAUSTED", "429", "Too Many Requests", "quota")


class FailureReason(str, Enum):
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    MALFORMED = "malformed"
    EMPTY = "empty"
    UNAVAILABLE = "unavailable"


def classify_failure(exc):
    """Map an exception raised by the remote call to a ``FailureReason``."""
    if isinstance(exc, TimeoutError):
        return FailureReason.TIMEOUT
    code = getattr(exc, "code", None) or getattr(exc, "status_code", None)
    status = str(getattr(exc, "status", "") or "")
    if code == 429 or status == "RESOURCE_EXHAUSTED":
        return FailureReason.RATE_LIMIT
    if code is None:
        msg = str(exc or "")
        if any(marker in msg for marker in _RATE_LIMIT_MARKERS):
            return FailureReason.RATE_LIMIT
    return FailureReason.TRANSPORT


class GeminiClient:
    """Thin wrapper over ``genai.Client`` for the three calls Diga makes.

    Holds its own rate-limit cooldown so that, after a quota error, callers
    can skip the remote path entirely until the window expires.
    """

    def __init__(self, api_key, model=GEMINI_MODEL, image_model=GEMINI_IMAGE_MODEL,
                 cooldown_seconds=GEMINI_COOLDOWN_SECONDS, client=None):
        self.model = model
        self.image_model = image_model
        self.cooldown_seconds = cooldown_seconds
        self._client = client if client is not None else genai.Client(api_key=api_key)
        self._cooldown_until = 0.0
        self._lock = threading.Lock()

    def set_cooldown(self, seconds=None):
        secs = self.cooldown_seconds if seconds is None else seconds
        with self._lock:
            self._cooldown_until = time.time() + float(secs or 0)
        if secs:
            logger.warning("[gemini] cooldown de %ss após limite de requisições", secs)

    def is_available(self):
        with self._lock:
            return time.time() >= self._cooldown_until

    def generate_intent(self, system_instruction, context, message):
        resposta = self._client.models.generate_content(
            model=self.model,
            contents=[
                types.Content(role="user", parts=[types.Part(text=context)]),
                types.Content(role="user", parts=[types.Part(text=message)]),
            ],
            config=types.GenerateContentConfig(
                system_instruction=system_instruction,
                response_mime_type="application/json",
                response_schema=RESPONSE_SCHEMA,
                temperature=0.3,
            ),
        )
        return (getattr(resposta, "text", "") or "").strip()

    def generate_goal_image(self, goal_name):
        """Data URL of an illustration for ``goal_name``, or None."""
        try:
            resposta = self._client.models.generate_content(
                model=self.image_model,
                contents=IMAGE_PROMPT.format(name=goal_name),
            )
        except Exception:
            logger.warning("[gemini] falha ao gerar imagem da meta %r (ignorada)", goal_name, exc_info=True)
            return None
        for candidate in getattr(resposta, "candidates", None) or []:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                blob = getattr(part, "inline_data", None)
                if blob is None or not getattr(blob, "data", None):
                    continue
                data = blob.data
                if isinstance(data, (bytes, bytearray)):
                    data = base64.b64encode(data).decode("ascii")
                return f"data:{blob.mime_type or 'image/png'};base64,{data}"
        return None

    def daily_quote(self):
        try:
            resposta = self._client.models.generate_content(
                model=self.model,
                contents=QUOTE_PROMPT,
                config=types.GenerateContentConfig(temperature=0.9, max_output_tokens=64),
            )
        except Exception:
            logger.warning("[gemini] falha ao buscar frase do dia", exc_info=True)
            return DEFAULT_QUOTE
        txt = (getattr(resposta, "text", "") or "").strip().strip('"')
        return txt.splitlines()[0].strip() if txt else "Foco no futuro."


def build_client(api_key=None):
    """GeminiClient from configuration, or None when no key is configured."""
    key = api_key or GEMINI_API_KEY
    if not key:
        logger.warning("GEMINI_API_KEY não configurada; respostas apenas no modo offline")
        return None
    return GeminiClient(api_key=key)
