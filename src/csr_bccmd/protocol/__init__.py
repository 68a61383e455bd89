"""Protocol layer: BCCMD framing, request builders, and response parsing."""

from .framing import build_message, parse_message, MessageType, Status
from .commands import VarId, RadioTest
from .parser import PSValue
