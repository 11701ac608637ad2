import logging
from typing import Dict, Iterator, List, Optional

from .model import AssistantTurn, ConversationEntry, Outcome

logger = logging.getLogger(__name__)


class ConversationLog:
    """
    Append-only record of turns, in append order.

    Order is the only ordering guarantee; two turns may share a timestamp.
    """

    def __init__(self) -> None:
        self._entries: List[ConversationEntry] = []
        self._by_id: Dict[str, ConversationEntry] = {}

    def append_turn(self, entry: ConversationEntry) -> ConversationEntry:
        if entry.id in self._by_id:
            raise ValueError(f"Turn {entry.id} is already in the log")
        self._entries.append(entry)
        self._by_id[entry.id] = entry
        return entry

    def resolve_turn(self, turn_id: str, outcome: Outcome) -> bool:
        """
        Move a pending AssistantTurn to resolved.
        Unknown ids and already resolved turns are left alone; returns whether anything changed.
        """
        turn = self._by_id.get(turn_id)
        if not isinstance(turn, AssistantTurn):
            logger.debug("[ConversationLog] No assistant turn %s to resolve", turn_id)
            return False
        if not turn.is_pending:
            logger.debug("[ConversationLog] Turn %s already resolved, ignoring %s", turn_id, outcome.kind)
            return False
        turn.outcome = outcome
        turn.state = "resolved"
        return True

    def get(self, turn_id: str) -> Optional[ConversationEntry]:
        return self._by_id.get(turn_id)

    def pending_turns(self) -> List[AssistantTurn]:
        return [e for e in self._entries if isinstance(e, AssistantTurn) and e.is_pending]

    @property
    def entries(self) -> List[ConversationEntry]:
        return list(self._entries)

    def __iter__(self) -> Iterator[ConversationEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
