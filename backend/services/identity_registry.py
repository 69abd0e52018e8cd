import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class IdentityRegistry:
    """
    participant_id → live connection handle.
    Rebuilt on every (re)connect, discarded on disconnect. Never touches rooms.
    """

    def __init__(self):
        self._handles: Dict[str, str] = {}

    def bind(self, participant_id: str, handle: str) -> None:
        """Record (or overwrite) the live connection for an identity.

        A handle speaks for one identity at a time: binding it to a new
        identity releases the old one.
        """
        previous = self._handles.get(participant_id)
        stale = self.identity_for(handle)
        if stale is not None and stale != participant_id:
            del self._handles[stale]
        self._handles[participant_id] = handle
        if previous != handle:
            logger.debug(f"{participant_id} bound to connection {handle}")

    def unbind(self, handle: str) -> Optional[str]:
        """Remove whichever identity maps to *handle*. Returns it, or None."""
        for participant_id, bound in self._handles.items():
            if bound == handle:
                del self._handles[participant_id]
                logger.debug(f"{participant_id} unbound from connection {handle}")
                return participant_id
        return None

    def handle_for(self, participant_id: str) -> Optional[str]:
        return self._handles.get(participant_id)

    def identity_for(self, handle: str) -> Optional[str]:
        for participant_id, bound in self._handles.items():
            if bound == handle:
                return participant_id
        return None

    def __len__(self) -> int:
        return len(self._handles)
