"""Main interactive loop for the finder screen.

Each tick waits briefly for one key, dispatches it, and forces a redraw when
background loading advanced even though no key was pressed.
"""

from __future__ import annotations

from ..screen import Screen


def run_main_loop(screen: Screen) -> None:
    """Run ``screen`` until a quit action closes it.

    The surface is restored on every exit path.
    """
    with screen.session():
        screen.init()
        while not screen.closed():
            try:
                screen.wait_and_handle_input()
            except KeyboardInterrupt:
                continue
            if screen.closed():
                break
            if screen.changed_state():
                screen.rerender()
