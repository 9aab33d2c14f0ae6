from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import requests

from . import config
from .session import USER, Turn

OFFLINE_CHAT = (
    "I'm currently running in offline mode (API Key missing). I'm here to listen, "
    "but my responses are limited. Remember to breathe."
)
CHAT_FALLBACK = (
    "I'm having a little trouble connecting right now, but please know you're not alone. "
    "Try taking a deep breath: Inhale... and Exhale..."
)
EMPTY_CHAT = "I'm here with you."

OFFLINE_AFFIRMATION = "You are stronger than you know."
EMPTY_AFFIRMATION = "This too shall pass."
AFFIRMATION_FALLBACK = "Hold on to hope."

OFFLINE_ANALYSIS = "I need an API key to see and hear you correctly."
UNABLE_TO_CAPTURE = (
    "I was unable to capture a clear image or audio. "
    "Please check your camera/microphone and try again."
)
EMPTY_ANALYSIS = (
    "I can see you, but I'm having trouble analyzing the signal. You matter, and I'm here."
)
ANALYSIS_FALLBACK = (
    "I'm having a little trouble connecting to my analysis senses. "
    "Please try again or use the Chat feature."
)

AUDIO_PROMPT = "Please respond to this audio. Remember to transcribe it first."
AFFIRMATION_PROMPT = (
    "Generate a short, unique, hopeful affirmation for someone having a hard day. "
    "Max 15 words. Tone: Gentle, not toxic positivity."
)
ANALYSIS_PROMPT = (
    "Analyze the facial expression in the image and the tone of voice/content in the audio. "
    "Address the user directly with a warm, empathetic assessment of how they seem to be "
    "feeling (e.g., 'You seem a bit overwhelmed'). Then, suggest one specific feature in this "
    "app (Breathing, 3AM Friend Chat, or Safety Plan) that might support them best right now. "
    "Keep it under 50 words."
)

_TRANSCRIPT_RE = re.compile(r"<transcript>(.*?)</transcript>", re.DOTALL)


class GatewayError(RuntimeError):
    """Raised internally when the generative API call cannot produce text."""


@dataclass(frozen=True)
class Reply:
    text: str
    transcript: Optional[str] = None


def parse_transcript(text: str) -> Reply:
    """Split a ``<transcript>`` segment off the model output.

    Missing or unbalanced markers leave the text untouched and yield no
    transcript.
    """

    match = _TRANSCRIPT_RE.search(text or "")
    if not match:
        return Reply(text=(text or "").strip())
    transcript = match.group(1).strip() or None
    cleaned = (text[: match.start()] + text[match.end() :]).strip()
    return Reply(text=cleaned, transcript=transcript)


def _inline_part(mime_type: str, data: str) -> Dict[str, Any]:
    return {"inlineData": {"mimeType": mime_type, "data": data}}


class GeminiGateway:
    """Request/response client for the Gemini ``generateContent`` endpoint.

    Every public method resolves to text: missing credentials short-circuit
    to an offline message and any transport or payload failure is logged and
    replaced by a scripted fallback.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str | None = None,
        host: str | None = None,
        timeout: float | None = None,
        system_instruction: str | None = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.api_key = config.API_KEY if api_key is None else api_key
        self.model = model or config.MODEL
        selected_host = (host or config.HOST).rstrip("/")
        if not selected_host.startswith("http://") and not selected_host.startswith("https://"):
            selected_host = "https://" + selected_host
        self.host = selected_host
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.system_instruction = (
            config.SYSTEM_INSTRUCTION if system_instruction is None else system_instruction
        )
        self._logger = logger or logging.getLogger(__name__)
        if session is None:
            self._session = requests.Session()
            self._close_session = self._session.close
        else:
            self._session = session
            self._close_session = getattr(session, "close", lambda: None)

    @property
    def offline(self) -> bool:
        return not self.api_key

    def close(self) -> None:
        self._close_session()

    def __enter__(self) -> "GeminiGateway":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def converse(
        self,
        history: Sequence[Turn],
        text: str,
        audio_base64: str | None = None,
    ) -> Reply:
        """Exchange one conversational turn given the prior ``history``."""

        if self.offline:
            return Reply(text=OFFLINE_CHAT)
        if not audio_base64 and not (text or "").strip():
            self._logger.debug("Skipping conversation request with no text or audio")
            return Reply(text=EMPTY_CHAT)

        contents = self._history_contents(history)
        if audio_base64:
            parts: List[Dict[str, Any]] = [
                _inline_part(config.AUDIO_MIME_TYPE, audio_base64),
                {"text": AUDIO_PROMPT},
            ]
        else:
            parts = [{"text": text}]
        contents.append({"role": "user", "parts": parts})

        payload: Dict[str, Any] = {"contents": contents}
        if self.system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": self.system_instruction}]}

        try:
            raw = self._generate(payload)
        except GatewayError as exc:
            self._logger.warning("Conversation request failed: %s", exc)
            return Reply(text=CHAT_FALLBACK)

        reply = parse_transcript(raw or EMPTY_CHAT)
        if not reply.text:
            reply = Reply(text=EMPTY_CHAT, transcript=reply.transcript)
        return reply

    def affirmation(self) -> str:
        if self.offline:
            return OFFLINE_AFFIRMATION
        payload = {"contents": [{"role": "user", "parts": [{"text": AFFIRMATION_PROMPT}]}]}
        try:
            text = self._generate(payload)
        except GatewayError as exc:
            self._logger.warning("Affirmation request failed: %s", exc)
            return AFFIRMATION_FALLBACK
        return text.strip() or EMPTY_AFFIRMATION

    def analyze_sentiment(self, image_base64: str = "", audio_base64: str = "") -> str:
        """Return a short empathetic reading of a still frame and/or voice clip."""

        if self.offline:
            return OFFLINE_ANALYSIS

        parts: List[Dict[str, Any]] = []
        if image_base64:
            parts.append(_inline_part(config.IMAGE_MIME_TYPE, image_base64))
        if audio_base64:
            parts.append(_inline_part(config.AUDIO_MIME_TYPE, audio_base64))
        if not parts:
            return UNABLE_TO_CAPTURE
        parts.append({"text": ANALYSIS_PROMPT})

        payload = {"contents": [{"role": "user", "parts": parts}]}
        try:
            text = self._generate(payload)
        except GatewayError as exc:
            self._logger.warning("Sentiment analysis request failed: %s", exc)
            return ANALYSIS_FALLBACK
        return text.strip() or EMPTY_ANALYSIS

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @staticmethod
    def _history_contents(history: Sequence[Turn]) -> List[Dict[str, Any]]:
        return [
            {
                "role": "user" if turn.author == USER else "model",
                "parts": [{"text": turn.body}],
            }
            for turn in history
        ]

    def _endpoint(self) -> str:
        return f"{self.host}/v1beta/models/{self.model}:generateContent"

    def _generate(self, payload: Dict[str, Any]) -> str:
        url = self._endpoint()
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        t0 = time.perf_counter()
        try:
            response = self._session.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            raise GatewayError(f"{exc.__class__.__name__}: {exc}") from exc

        elapsed = time.perf_counter() - t0
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            preview = (getattr(response, "text", "") or "")[:400]
            raise GatewayError(
                f"HTTP {response.status_code} from {self.model}: {preview or exc}"
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise GatewayError("Response body was not valid JSON") from exc

        text = self._extract_text(data)
        self._logger.debug(
            "Model %s answered in %.2fs (%d chars)", self.model, elapsed, len(text)
        )
        return text

    def _extract_text(self, data: Any) -> str:
        if not isinstance(data, dict):
            raise GatewayError(f"Unexpected response payload: {json.dumps(data)[:200]}")
        feedback = data.get("promptFeedback")
        if isinstance(feedback, dict) and feedback.get("blockReason"):
            raise GatewayError(f"Prompt blocked: {feedback['blockReason']}")
        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            return ""
        first = candidates[0]
        if not isinstance(first, dict):
            return ""
        content = first.get("content")
        if not isinstance(content, dict):
            return ""
        parts = content.get("parts")
        if not isinstance(parts, list):
            return ""
        chunks = [
            part.get("text", "")
            for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ]
        return "".join(chunks)


__all__ = [
    "AFFIRMATION_FALLBACK",
    "ANALYSIS_FALLBACK",
    "CHAT_FALLBACK",
    "EMPTY_AFFIRMATION",
    "EMPTY_ANALYSIS",
    "EMPTY_CHAT",
    "GatewayError",
    "GeminiGateway",
    "OFFLINE_AFFIRMATION",
    "OFFLINE_ANALYSIS",
    "OFFLINE_CHAT",
    "Reply",
    "UNABLE_TO_CAPTURE",
    "parse_transcript",
]
