"""Console rendering of attached process output."""

from typing import TYPE_CHECKING, Literal, final

from rich.console import Console
from rich.style import Style
from rich.text import Text

from ._models import ProcessEventType

if TYPE_CHECKING:
    from ._models import ProcessEvent

_PREFIX_STYLE = Style(color="blue", bold=True)
_DETAIL_STYLE = Style(dim=True)

_STREAM_STYLES: dict[str, Style] = {
    "stdout": Style(),
    "stderr": Style(color="red", dim=True),
}

_EVENT_STYLES: dict[ProcessEventType, Style] = {
    ProcessEventType.SPAWNED: Style(color="cyan"),
    ProcessEventType.READY: Style(color="green", bold=True),
    ProcessEventType.STOPPED: Style(color="yellow"),
    ProcessEventType.FAILED: Style(color="red", bold=True),
}


@final
class ConcatenatedOutputSink:
    """Interleaves the output of every attached process on one console.

    Lines are printed as ``[name:pid] line``; stderr is dimmed red. Lifecycle
    events are printed as ``[name] EVENT (pid=..) exit_code=.. - message``.
    """

    __slots__ = ("_console",)

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    async def write_line(
        self,
        process_name: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        self._console.print(
            Text.assemble(
                (f"[{process_name}:{pid}]", _PREFIX_STYLE),
                " ",
                (line, _STREAM_STYLES[stream]),
            )
        )

    async def write_event(self, process_name: str, event: "ProcessEvent") -> None:
        style = _EVENT_STYLES.get(event.event_type, Style())
        text = Text.assemble(
            (f"[{process_name}]", _PREFIX_STYLE),
            " ",
            (event.event_type.value.upper(), style),
        )
        if event.pid is not None:
            _ = text.append(f" (pid={event.pid})", style=_DETAIL_STYLE)
        if event.exit_code is not None:
            _ = text.append(f" exit_code={event.exit_code}", style=_DETAIL_STYLE)
        if event.message:
            _ = text.append(f" - {event.message}", style=style)
        self._console.print(text)
