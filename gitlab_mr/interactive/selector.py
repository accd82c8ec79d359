# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Paged, keyboard driven list selector drawn in place on the terminal"""

import math
import os
import signal
import sys
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar, Union

from ..colors import BOLD, CYAN, bold, dim, paint
from ..logging_utils import get_logger
from ..terminal import (
    KEY_CTRL_C,
    KEY_DOWN,
    KEY_ENTER,
    KEY_ESCAPE,
    KEY_LEFT,
    KEY_PAGE_DOWN,
    KEY_PAGE_UP,
    KEY_RIGHT,
    KEY_UP,
    AnsiSurface,
    RawKeyReader,
    TerminalSurface,
    is_tty,
)
from .prompts import prompt_select

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
PAGER_HELP_TEXT = (
    "↑/↓ move  ·  ←/→ change page  ·  1-9 quick select  ·  Enter confirm  ·  Esc cancel"
)
FAVORITE_HELP_TEXT = "★ toggle favorite (f)"

Formatter = Callable[[Any, int], Union[str, List[str]]]


class SelectorHooks:
    """Capabilities a selector may call back into.

    `toggle_favorite(item, index)` enables the "f" key; `notify_failure(message)`
    reports a failed toggle without leaving the list.
    """

    def __init__(
        self,
        toggle_favorite: Optional[Callable[[Any, int], None]] = None,
        notify_failure: Optional[Callable[[str], None]] = None,
    ):
        self.toggle_favorite = toggle_favorite
        self.notify_failure = notify_failure or get_logger().warning

    @property
    def supports_favorites(self) -> bool:
        return self.toggle_favorite is not None


class PagedSelector(Generic[T]):
    """Keypress state machine over a fixed list of items"""

    def __init__(
        self,
        items: Sequence[T],
        title: str,
        format_item: Formatter,
        page_size: int = DEFAULT_PAGE_SIZE,
        help_text: Optional[str] = PAGER_HELP_TEXT,
        hooks: Optional[SelectorHooks] = None,
        surface: Optional[TerminalSurface] = None,
    ):
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.items = items
        self.title = title
        self.format_item = format_item
        self.page_size = page_size
        self.help_text = help_text
        self.hooks = hooks or SelectorHooks()
        self.surface = surface or AnsiSurface()
        self.selection_index = 0
        self.page_index = 0
        self.last_rendered_line_count = 0
        self.done = False
        self.interrupted = False
        self.result: Optional[T] = None

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(len(self.items) / self.page_size))

    @property
    def page_start(self) -> int:
        return self.page_index * self.page_size

    @property
    def page_end(self) -> int:
        return min(self.page_start + self.page_size, len(self.items))

    def item_lines(self, index: int) -> List[str]:
        raw = self.format_item(self.items[index], index)
        if isinstance(raw, (list, tuple)):
            return [str(line) for line in raw]
        return str(raw).split("\n")

    def ensure_selection_visible(self):
        last = self.page_end - 1
        if self.selection_index < self.page_start:
            self.selection_index = self.page_start
        elif self.selection_index > last:
            self.selection_index = last

    def _finish(self, result: Optional[T] = None):
        self.result = result
        self.done = True

    def handle_key(self, key: str) -> bool:
        """Apply one key; returns True once the selection is finished"""
        if self.done:
            return True

        if key == KEY_CTRL_C:
            self.interrupted = True
            self._finish(None)
        elif key in (KEY_LEFT, KEY_PAGE_UP):
            if self.page_index > 0:
                self.page_index -= 1
                self.ensure_selection_visible()
                self.render()
        elif key in (KEY_RIGHT, KEY_PAGE_DOWN):
            if self.page_index < self.total_pages - 1:
                self.page_index += 1
                self.ensure_selection_visible()
                self.render()
        elif key == KEY_UP:
            if self.selection_index > 0:
                self.selection_index -= 1
                self.page_index = self.selection_index // self.page_size
                self.render()
        elif key == KEY_DOWN:
            if self.selection_index < len(self.items) - 1:
                self.selection_index += 1
                self.page_index = self.selection_index // self.page_size
                self.render()
        elif key == KEY_ENTER:
            self._finish(self.items[self.selection_index])
        elif key == KEY_ESCAPE:
            self._finish(None)
        elif key == "f" and self.hooks.supports_favorites:
            self._toggle_favorite()
        elif len(key) == 1 and key in "123456789":
            target = self.page_start + int(key) - 1
            if target < len(self.items) and target < self.page_start + self.page_size:
                self.selection_index = target
                self.render()
        return self.done

    def _toggle_favorite(self):
        index = self.selection_index
        try:
            self.hooks.toggle_favorite(self.items[index], index)
        except Exception as exc:
            self.hooks.notify_failure(f"Favorite toggle failed: {exc}")
        self.ensure_selection_visible()
        self.render()

    def frame_lines(self) -> List[str]:
        page_label = f"{self.page_index + 1}/{self.total_pages}"
        lines = [f"{bold(self.title)} {dim(f'(page {page_label})')}"]
        if self.help_text:
            lines.append(dim(self.help_text))
        lines.append("")

        for index in range(self.page_start, self.page_end):
            selected = index == self.selection_index
            for line_no, line in enumerate(self.item_lines(index)):
                if line_no == 0:
                    pointer = paint("▸", CYAN) if selected else dim("•")
                    text = paint(line, CYAN, BOLD) if selected else line
                else:
                    pointer = " "
                    text = paint(line, CYAN) if selected else line
                lines.append(f"{pointer} {text}")
            lines.append("")

        lines.append(dim(f"Page {page_label}"))
        return lines

    def clear(self):
        if self.last_rendered_line_count > 0:
            self.surface.move_up(self.last_rendered_line_count)
            self.surface.clear_down()
            self.last_rendered_line_count = 0

    def render(self):
        self.ensure_selection_visible()
        lines = self.frame_lines()
        self.clear()
        for line in lines:
            self.surface.write_line(line)
        self.surface.flush()
        self.last_rendered_line_count = len(lines)

    def run(self, reader) -> Optional[T]:
        """Drive the selector from `reader` until Enter, Escape or Ctrl-C"""
        try:
            with reader:
                self.render()
                while not self.done:
                    for key in reader.read_keys():
                        if self.handle_key(key):
                            break
        finally:
            self.clear()
            self.surface.flush()

        if self.interrupted:
            os.kill(os.getpid(), signal.SIGINT)
        return self.result


def _fallback_select(
    items: Sequence[T], title: str, line_for: Callable[[int], str]
) -> Optional[T]:
    choices = [(line_for(index) or title, index) for index in range(len(items))]
    choices.append(("Cancel", -1))
    result = prompt_select(title, choices, default=0)
    if result.cancelled or result.value == -1:
        return None
    return items[result.value]


def select_from_paged_list(
    items: Sequence[T],
    title: str,
    format_item: Formatter,
    help_text: Optional[str] = PAGER_HELP_TEXT,
    page_size: int = DEFAULT_PAGE_SIZE,
    hooks: Optional[SelectorHooks] = None,
    stdin=None,
    stdout=None,
) -> Optional[T]:
    """Let the user pick one of `items`; returns None when cancelled"""
    if not items:
        return None
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    selector = PagedSelector(
        items,
        title,
        format_item,
        page_size=page_size,
        help_text=help_text,
        hooks=hooks,
        surface=AnsiSurface(stdout),
    )
    if not (is_tty(stdin) and is_tty(stdout)):
        return _fallback_select(items, title, lambda index: selector.item_lines(index)[0])
    return selector.run(RawKeyReader(stdin))
