"""Characters router for personad API.

Create, list, edit, select and delete a user's characters.
"""

import logging
from typing import Annotated

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException

from persona_library.admin import AnalyticsService
from persona_library.characters import CharacterManager
from persona_library.models.characters import Character
from persona_library.models.characters import CharacterCreate
from persona_library.models.characters import CharacterUpdate

from ..dependencies import get_analytics_service
from ..dependencies import get_character_manager
from ..models import DeleteCharacterResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users/{user_id}/characters", tags=["characters"])


@router.get("", response_model=list[Character])
async def list_characters(
    user_id: str,
    characters: Annotated[CharacterManager, Depends(get_character_manager)],
) -> list[Character]:
    """List characters, most recently used first."""
    try:
        return characters.list_characters(user_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to list characters for {user_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.post("", response_model=Character, status_code=201)
async def create_character(
    user_id: str,
    request: CharacterCreate,
    characters: Annotated[CharacterManager, Depends(get_character_manager)],
    analytics: Annotated[AnalyticsService, Depends(get_analytics_service)],
) -> Character:
    """Create a character.

    Field validation (age 1-100, description up to 500 characters, known
    tone, non-blank name and profession) happens on the request model.
    """
    try:
        character = characters.create_character(user_id, request)
        analytics.track_character_created(user_id, character.id, character.name)
        return character
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to create character for {user_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.get("/{character_id}", response_model=Character)
async def get_character(
    user_id: str,
    character_id: str,
    characters: Annotated[CharacterManager, Depends(get_character_manager)],
) -> Character:
    try:
        return characters.require_character(user_id, character_id)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to get character {character_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.patch("/{character_id}", response_model=Character)
async def update_character(
    user_id: str,
    character_id: str,
    request: CharacterUpdate,
    characters: Annotated[CharacterManager, Depends(get_character_manager)],
) -> Character:
    """Edit a character. Existing sessions keep their snapshot."""
    try:
        return characters.update_character(user_id, character_id, request)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to update character {character_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.post("/{character_id}/select", response_model=Character)
async def select_character(
    user_id: str,
    character_id: str,
    characters: Annotated[CharacterManager, Depends(get_character_manager)],
) -> Character:
    """Mark a character as selected (bumps lastUsed)."""
    try:
        return characters.touch(user_id, character_id)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to select character {character_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.delete("/{character_id}", response_model=DeleteCharacterResponse)
async def delete_character(
    user_id: str,
    character_id: str,
    characters: Annotated[CharacterManager, Depends(get_character_manager)],
) -> DeleteCharacterResponse:
    """Delete a character and every session that references it."""
    try:
        removed = characters.delete_character(user_id, character_id)
        return DeleteCharacterResponse(character_id=character_id, sessions_removed=removed)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to delete character {character_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc
