"""Character management.

Public Interface:
    - CharacterManager: Create, edit, select and delete characters
"""

from .manager import CharacterManager

__all__ = ["CharacterManager"]
