"""Services for personad daemon."""

from .gateway import CompletionGateway
from .gateway import GatewayFrameSource
from .gateway import build_turns
from .provider import GeminiProvider
from .provider import ModelProvider
from .provider import ProviderUnavailableError
from .provider import Turn

__all__ = [
    "CompletionGateway",
    "GatewayFrameSource",
    "build_turns",
    "GeminiProvider",
    "ModelProvider",
    "ProviderUnavailableError",
    "Turn",
]
