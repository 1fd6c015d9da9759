"""Click-to-reveal state for numbered callouts.

Tracks which callouts the viewer has revealed during the session and which
single popup is open. This is transient UI state: it never touches the
persisted callout records, and it works the same in view and edit mode.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple

from .callout import Callout
from .geometry import ContainerRect

logger = logging.getLogger(__name__)


def _screen_center(callout: Callout, container: ContainerRect) -> Tuple[float, float]:
    center_x, center_y = callout.box.center
    return (
        container.left + center_x / 100.0 * container.width,
        container.top + center_y / 100.0 * container.height,
    )


@dataclass
class RevealState:
    """Revealed flags plus the one active popup.

    Attributes:
        revealed: Ids revealed at least once; flags are never cleared.
        active_reveal: Id whose popup is open, or None.
        click_anchor: Screen point captured when the popup was opened.
    """

    revealed: set[str] = field(default_factory=set)
    active_reveal: Optional[str] = None
    click_anchor: Optional[Tuple[float, float]] = None

    def toggle(self, callout: Callout, container: ContainerRect) -> bool:
        """Open or close the popup for a revealable callout.

        Returns:
            True if the click was handled, False for callouts without
            reveal text or before the container has been measured.
        """
        if not callout.is_revealable or callout.id is None:
            return False
        if not container.is_measured:
            logger.debug("Ignoring reveal click before container layout")
            return False

        if self.active_reveal == callout.id:
            self.close()
            return True

        self.active_reveal = callout.id
        self.revealed.add(callout.id)
        self.click_anchor = _screen_center(callout, container)
        return True

    def close(self) -> None:
        self.active_reveal = None
        self.click_anchor = None

    def is_revealed(self, callout_id: Optional[str]) -> bool:
        return callout_id in self.revealed

    def active_callout(self, callouts: Iterable[Callout]) -> Optional[Callout]:
        if self.active_reveal is None:
            return None
        for callout in callouts:
            if callout.id == self.active_reveal:
                return callout
        return None

    def popup_anchor(
        self, callouts: Iterable[Callout], container: ContainerRect
    ) -> Optional[Tuple[float, float]]:
        """Screen center of the active callout against the current layout.

        Recomputed on every call so the popup follows resizes; None when no
        popup is open or the container is not measured.
        """
        callout = self.active_callout(callouts)
        if callout is None or not container.is_measured:
            return None
        return _screen_center(callout, container)

    def prune(self, callouts: Iterable[Callout]) -> None:
        """Close the popup if its callout was deleted."""
        if self.active_reveal is not None and self.active_callout(callouts) is None:
            logger.debug("Closing reveal popup for removed callout %s", self.active_reveal)
            self.close()
