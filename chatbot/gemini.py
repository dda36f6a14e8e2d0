import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

GENERATION_CONFIG = {
    "temperature": 0.2,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 800,
}


class GeminiError(RuntimeError):
    pass


def _safe_json(resp):
    try:
        return resp.json()
    except ValueError:
        txt = (resp.text or "")[:600]
        raise GeminiError(f"Non-JSON response. HTTP {resp.status_code}. Body: {txt}")


def _endpoint():
    base = settings.GEMINI_API_URL.rstrip("/")
    return f"{base}/models/{settings.GEMINI_MODEL}:generateContent"


def generate_reply(system_prompt, history, message):
    """
    One generateContent call. ``history`` is a list of Gemini-shaped turns
    ({"role": "user"|"model", "parts": [{"text": ...}]}).
    """
    if not settings.GEMINI_API_KEY:
        raise GeminiError("GEMINI_API_KEY missing")

    payload = {
        "system_instruction": {"parts": [{"text": system_prompt}]},
        "contents": list(history or []) + [{"role": "user", "parts": [{"text": message}]}],
        "generationConfig": GENERATION_CONFIG,
    }
    try:
        resp = requests.post(
            _endpoint(),
            json=payload,
            headers={"x-goog-api-key": settings.GEMINI_API_KEY},
            timeout=settings.GEMINI_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        raise GeminiError(f"Gemini request failed: {exc}")

    data = _safe_json(resp)
    if resp.status_code >= 400:
        raise GeminiError(f"Gemini call failed. HTTP {resp.status_code}. {data}")

    try:
        return data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise GeminiError(f"Unexpected Gemini response: {str(data)[:600]}")
