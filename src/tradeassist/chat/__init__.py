"""Chat pipeline: orchestration, output sanitizing and stream frames."""

from tradeassist.chat.frames import DONE, error_frame, text_frame, visual_frame
from tradeassist.chat.orchestrator import ChatOrchestrator, ChatRequest, ChatTurn, TurnState
from tradeassist.chat.sanitizer import DEFAULT_RULES, OutputSanitizer, SanitizerRule

__all__ = [
    "DEFAULT_RULES",
    "DONE",
    "ChatOrchestrator",
    "ChatRequest",
    "ChatTurn",
    "OutputSanitizer",
    "SanitizerRule",
    "TurnState",
    "error_frame",
    "text_frame",
    "visual_frame",
]
