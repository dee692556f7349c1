"""
Conversation Repository.

Reads recent exchanges from atlas_conversations and formats them as a
bounded transcript for the reasoning prompt.
"""

import logging
from typing import List, Optional

from atlas.api.errors import DatabaseError
from atlas.models.entities import ConversationTurn
from atlas.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

TRANSCRIPT_HEADER = "=== Recent Conversation History ==="
TRANSCRIPT_FOOTER = "=== End History ==="


class ConversationRepository(BaseRepository[ConversationTurn]):
    """
    Repository for atlas_conversations.

    Also serves as the conversation context provider for Tier 3.
    """

    table_name = "atlas_conversations"
    model_class = ConversationTurn

    async def recent_turns(
        self,
        user_id: str,
        session_id: Optional[str] = None,
        limit: int = 15,
    ) -> List[ConversationTurn]:
        """
        Get the most recent turns for a user, oldest first.

        Args:
            user_id: User identifier
            session_id: Optional session filter
            limit: Maximum turns

        Returns:
            Turns in chronological order
        """
        filters = {"user_id": user_id}
        if session_id:
            filters["session_id"] = session_id

        turns = await self.get_many(filters, limit=limit, order_by="created_at", descending=True)
        return list(reversed(turns))

    async def get_context(
        self,
        user_id: str,
        session_id: Optional[str] = None,
        turns: int = 15,
    ) -> str:
        """
        Get a formatted transcript of recent turns.

        A failed lookup yields an empty transcript; the prompt is still
        usable without history.

        Returns:
            Transcript wrapped in history markers, or "" when there is none
        """
        if turns <= 0:
            return ""

        try:
            history = await self.recent_turns(user_id, session_id=session_id, limit=turns)
        except DatabaseError as e:
            logger.warning(f"Conversation history unavailable for user {user_id}: {e}")
            return ""

        if not history:
            return ""

        lines = [
            f"{'User' if turn.role == 'user' else 'Atlas'}: {turn.content}" for turn in history
        ]
        return f"\n\n{TRANSCRIPT_HEADER}\n" + "\n".join(lines) + f"\n{TRANSCRIPT_FOOTER}\n"
