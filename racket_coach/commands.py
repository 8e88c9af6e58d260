"""
Voice Command Routing

Free-text, case-insensitive substring matching. Not a grammar: the first
matching rule wins, so more specific phrases are checked first
("unmute" before "mute").
"""

from dataclasses import dataclass
from typing import Optional, Tuple
from enum import Enum

from .states import Focus


class CommandType(Enum):
    START_SESSION = "start_session"
    END_SESSION = "end_session"
    MUTE = "mute"
    UNMUTE = "unmute"
    REQUEST_CUE = "request_cue"
    SET_FOCUS = "set_focus"


@dataclass(frozen=True)
class Command:
    command_type: CommandType
    focus: Optional[Focus] = None


COMMAND_PHRASES: Tuple[Tuple[CommandType, Tuple[str, ...]], ...] = (
    (CommandType.START_SESSION, ("start session", "start tennis", "tennis session")),
    (CommandType.END_SESSION, ("end session", "stop session", "stop tennis")),
    (CommandType.UNMUTE, ("unmute", "speak again")),
    (CommandType.MUTE, ("be quiet", "mute")),
    (CommandType.REQUEST_CUE, ("what should i fix", "what to work on")),
)

FOCUS_PHRASES: Tuple[Tuple[Focus, Tuple[str, ...]], ...] = (
    (Focus.MOVEMENT, ("focus on movement", "footwork")),
    (Focus.FOREHAND, ("focus on forehand",)),
    (Focus.BACKHAND, ("focus on backhand",)),
    (Focus.SERVE, ("focus on serve",)),
)


def parse_command(transcript: str) -> Optional[Command]:
    """Map a transcript to a command, or None if nothing matched."""
    lower = (transcript or "").lower()

    for command_type, phrases in COMMAND_PHRASES:
        if any(phrase in lower for phrase in phrases):
            return Command(command_type)

    for focus, phrases in FOCUS_PHRASES:
        if any(phrase in lower for phrase in phrases):
            return Command(CommandType.SET_FOCUS, focus=focus)

    return None
