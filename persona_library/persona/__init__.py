"""Persona compilation.

Public Interface:
    - compile_persona: Build the system instruction for a character
"""

from .compiler import NO_DESCRIPTION
from .compiler import compile_persona

__all__ = ["compile_persona", "NO_DESCRIPTION"]
