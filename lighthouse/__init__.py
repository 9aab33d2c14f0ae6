"""Internal modules that back the Lighthouse Gradio application."""

from . import config as _config
from .chat import ChatState, ConversationController
from .checkin import CheckinState, Countdown, EmotionCheckinController
from .gateway import GatewayError, GeminiGateway, Reply, parse_transcript
from .grounding import BreathingCycle, GroundingWalkthrough
from .media import (
    CaptureCapability,
    CaptureOutcome,
    MediaCapture,
    MediaUnavailableError,
    probe_capture,
)
from .mood import MoodLog
from .router import View, ViewRouter
from .safety import SafetyPlan, default_plan
from .session import Session, Turn

reload_from_environment = _config.reload_from_environment

__all__ = [
    "BreathingCycle",
    "CaptureCapability",
    "CaptureOutcome",
    "ChatState",
    "CheckinState",
    "ConversationController",
    "Countdown",
    "EmotionCheckinController",
    "GatewayError",
    "GeminiGateway",
    "GroundingWalkthrough",
    "MediaCapture",
    "MediaUnavailableError",
    "MoodLog",
    "Reply",
    "SafetyPlan",
    "Session",
    "Turn",
    "View",
    "ViewRouter",
    "default_plan",
    "parse_transcript",
    "probe_capture",
    "reload_from_environment",
]


def __getattr__(name: str):
    if hasattr(_config, name):
        return getattr(_config, name)
    raise AttributeError(name)
