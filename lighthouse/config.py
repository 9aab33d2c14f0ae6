from __future__ import annotations

import os

API_KEY: str
MODEL: str
HOST: str
REQUEST_TIMEOUT: float
SYSTEM_INSTRUCTION: str
CHECKIN_SECONDS: int
MIC_ERROR_SECONDS: float
CAMERA_INDEX: int
AUDIO_SAMPLE_RATE: int
SERVER_HOST: str
SERVER_PORT: int
LOG_LEVEL: str

AUDIO_MIME_TYPE = "audio/wav"
IMAGE_MIME_TYPE = "image/jpeg"

_DEFAULT_SYSTEM_INSTRUCTION = (
    "You are '3AM Friend', a specialized AI companion within the Lighthouse app designed for "
    "late-night anxiety and difficult moments. Your core purpose is to provide a warm, "
    "non-judgmental presence that helps users de-escalate emotional distress through empathy "
    "and grounding.\n"
    "1. Persona: calm, patient and warm, like a compassionate friend who is awake with the user "
    "in the middle of the night.\n"
    "2. Empathy first: always validate the user's emotions before offering solutions.\n"
    "3. Voice messages: listen to the tone of voice and acknowledge it gently. You MUST start "
    "your response with a verbatim transcript of what the user said, enclosed in <transcript> "
    "tags. Example: <transcript>I just feel so alone.</transcript> I hear that loneliness in "
    "your voice...\n"
    "4. Grounding: if you notice panic or high anxiety, gently offer the 5-4-3-2-1 technique, "
    "4-7-8 breathing, or a sensory anchor.\n"
    "5. Safety: you are an AI, not a mental health professional. If the user expresses intent "
    "for self-harm or suicide, say: \"I hear how much pain you are in. I am an AI and want you "
    "to be safe. Please press the Help panel on your screen or call 988. I am here to listen, "
    "but please reach out to them for immediate help.\" Keep talking with them, but firmly "
    "prioritize professional support.\n"
    "6. Tone: soothing, soft, unhurried. Avoid clinical language.\n"
    "7. Keep responses under 80 words unless leading a guided exercise."
)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def reload_from_environment() -> None:
    """Refresh configuration values from the current environment."""

    global API_KEY, MODEL, HOST, REQUEST_TIMEOUT, SYSTEM_INSTRUCTION
    global CHECKIN_SECONDS, MIC_ERROR_SECONDS, CAMERA_INDEX, AUDIO_SAMPLE_RATE
    global SERVER_HOST, SERVER_PORT, LOG_LEVEL

    API_KEY = (
        os.getenv("LIGHTHOUSE_API_KEY")
        or os.getenv("GEMINI_API_KEY")
        or os.getenv("API_KEY")
        or ""
    ).strip()
    MODEL = os.getenv("LIGHTHOUSE_MODEL_NAME", "gemini-2.5-flash")
    HOST = os.getenv("LIGHTHOUSE_MODEL_HOST", "https://generativelanguage.googleapis.com")
    REQUEST_TIMEOUT = _env_float("LIGHTHOUSE_REQUEST_TIMEOUT", 60.0)
    if REQUEST_TIMEOUT <= 0:
        REQUEST_TIMEOUT = 60.0
    SYSTEM_INSTRUCTION = os.getenv("LIGHTHOUSE_PERSONA", _DEFAULT_SYSTEM_INSTRUCTION)
    CHECKIN_SECONDS = max(1, _env_int("LIGHTHOUSE_CHECKIN_SECONDS", 5))
    MIC_ERROR_SECONDS = max(0.0, _env_float("LIGHTHOUSE_MIC_ERROR_SECONDS", 3.0))
    CAMERA_INDEX = _env_int("LIGHTHOUSE_CAMERA_INDEX", 0)
    AUDIO_SAMPLE_RATE = _env_int("LIGHTHOUSE_AUDIO_SAMPLE_RATE", 16_000)
    SERVER_HOST = os.getenv("LIGHTHOUSE_SERVER_HOST", "127.0.0.1")
    SERVER_PORT = _env_int("LIGHTHOUSE_SERVER_PORT", 7860)
    LOG_LEVEL = os.getenv("LIGHTHOUSE_LOG_LEVEL", "INFO").strip().upper() or "INFO"


reload_from_environment()


__all__ = [
    "API_KEY",
    "AUDIO_MIME_TYPE",
    "AUDIO_SAMPLE_RATE",
    "CAMERA_INDEX",
    "CHECKIN_SECONDS",
    "HOST",
    "IMAGE_MIME_TYPE",
    "LOG_LEVEL",
    "MIC_ERROR_SECONDS",
    "MODEL",
    "REQUEST_TIMEOUT",
    "SERVER_HOST",
    "SERVER_PORT",
    "SYSTEM_INSTRUCTION",
    "reload_from_environment",
]
