"""Live view controller: feeds host updates through build and state.

The host reports each update (document edit, viewport move, selection
change).  Positions are remapped immediately; the rebuild of the visible
ranges runs inline or, with ``live.defer_rebuilds``, on the next turn of
the asyncio loop so keystroke handling is not blocked.  A deferred rebuild
that was overtaken by a newer update is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mdattrs.live.builder import DecorationBuilder
from mdattrs.live.changes import ChangeSet, Selection
from mdattrs.live.state import DecorationState, RebuildResult, Transaction

if TYPE_CHECKING:
    from mdattrs.config import LiveConfig
    from mdattrs.live.buffer import TextBuffer, VisibleRange
    from mdattrs.live.decorations import DecorationSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewUpdate:
    """What changed in the host view.

    ``buffer``, ``selection`` and ``viewport`` are the new values when they
    changed, None otherwise.
    """

    changes: ChangeSet = field(default_factory=ChangeSet.empty)
    buffer: TextBuffer | None = None
    selection: Selection | None = None
    viewport: tuple[VisibleRange, ...] | None = None

    @property
    def doc_changed(self) -> bool:
        return not self.changes.is_empty

    @property
    def viewport_changed(self) -> bool:
        return self.viewport is not None

    @property
    def selection_set(self) -> bool:
        return self.selection is not None

    @property
    def needs_rebuild(self) -> bool:
        return self.doc_changed or self.viewport_changed or self.selection_set


class LiveAnnotations:
    """Decorations for one live buffer."""

    def __init__(
        self,
        buffer: TextBuffer,
        visible_ranges: tuple[VisibleRange, ...],
        selection: Selection | None = None,
        builder: DecorationBuilder | None = None,
        config: LiveConfig | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if config is None:
            from mdattrs.config import get_settings  # noqa: PLC0415

            config = get_settings().live
        self.config = config
        self.builder = builder if builder is not None else DecorationBuilder(config)
        self.buffer = buffer
        self.visible_ranges = tuple(visible_ranges)
        self.selection = selection if selection is not None else Selection()
        self.state = DecorationState()
        self._loop = loop
        self._generation = 0
        self._pending: asyncio.Handle | None = None
        self._rebuild_now()

    @property
    def decorations(self) -> DecorationSet:
        return self.state.decorations

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def update(self, update: ViewUpdate) -> None:
        """Apply a host update."""
        if update.buffer is not None:
            self.buffer = update.buffer
        if update.selection is not None:
            self.selection = update.selection
        elif update.doc_changed:
            self.selection = self.selection.map(update.changes)
        if update.viewport is not None:
            self.visible_ranges = tuple(update.viewport)

        self._generation += 1

        if not update.needs_rebuild:
            self._commit(update.changes, None)
            return

        if not self.config.defer_rebuilds:
            self._commit(update.changes, self._rebuild())
            return

        # Remap now so positions stay valid until the deferred pass lands.
        self._commit(update.changes, None)
        self._schedule(self._generation)

    def flush(self) -> None:
        """Run a pending deferred rebuild immediately."""
        if self._pending is None:
            return
        self._pending.cancel()
        self._pending = None
        self._commit(ChangeSet.empty(), self._rebuild())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _rebuild(self) -> RebuildResult:
        tokens = self.builder.build(self.visible_ranges, self.buffer)
        mark, replace = self.builder.compute(tokens)
        logger.debug(
            "Rebuilt %d mark / %d replace decoration(s) over %d range(s)",
            mark.size,
            replace.size,
            len(self.visible_ranges),
        )
        return RebuildResult(self.visible_ranges, mark, replace)

    def _rebuild_now(self) -> None:
        self._commit(ChangeSet.empty(), self._rebuild())

    def _commit(self, changes: ChangeSet, rebuild: RebuildResult | None) -> None:
        self.state = self.state.apply(Transaction(changes, self.selection, rebuild))

    def _schedule(self, generation: int) -> None:
        if self._pending is not None:
            self._pending.cancel()
        try:
            loop = self._loop or asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; rebuilding inline")
            self._pending = None
            self._rebuild_now()
            return
        self._pending = loop.call_soon(self._run_deferred, generation)

    def _run_deferred(self, generation: int) -> None:
        if generation != self._generation:
            logger.debug("Dropping superseded rebuild %d", generation)
            return
        self._pending = None
        self._rebuild_now()
