"""Streaming chat pipeline.

Public Interface:
    - ChatClient: Send a message and stream the reply into a session
    - StreamConsumer, ReplyResult, ReplyStatus: Incremental persister
    - HttpFrameSource, FrameSource: Where gateway frames come from
    - format_frame, parse_frame: Event frame codec
"""

from .client import ChatClient
from .client import SendResult
from .client import SessionBusyError
from .consumer import ERROR_REPLY_TEXT
from .consumer import ReplyResult
from .consumer import ReplyStatus
from .consumer import StreamConsumer
from .frames import DONE_FRAME
from .frames import Frame
from .frames import FrameKind
from .frames import MalformedFrameError
from .frames import content_frame
from .frames import error_frame
from .frames import format_frame
from .frames import parse_frame
from .sources import FrameSource
from .sources import GatewayError
from .sources import HttpFrameSource

__all__ = [
    "ChatClient",
    "SendResult",
    "SessionBusyError",
    "StreamConsumer",
    "ReplyResult",
    "ReplyStatus",
    "ERROR_REPLY_TEXT",
    "FrameSource",
    "HttpFrameSource",
    "GatewayError",
    "Frame",
    "FrameKind",
    "MalformedFrameError",
    "DONE_FRAME",
    "format_frame",
    "content_frame",
    "error_frame",
    "parse_frame",
]
