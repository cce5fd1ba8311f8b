"""Console view of the voice controller events."""

import logging
from typing import Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..models.audio import AudioFrame
from ..models.voice import VoiceState
from ..models.webhook import WebhookReply

logger = logging.getLogger(__name__)

STATE_STYLES = {
    VoiceState.IDLE: ("⏹️  IDLE", "bold yellow"),
    VoiceState.LISTENING: ("🔴 LISTENING", "bold red"),
    VoiceState.THINKING: ("💭 THINKING", "bold blue"),
}

LEVEL_WIDTH = 30


class VoiceConsole:
    """Prints state changes, partial transcripts and toasts with rich.

    Subscribes its bound methods to the ``<prefix>.*`` topics; pypubsub keeps
    only weak references, so the console must be kept alive by its owner.
    """

    def __init__(self, prefix: str = "voice", console: Optional[Console] = None, show_levels: bool = False):
        self.prefix = prefix
        self.console = console or Console()
        self.show_levels = show_levels
        self.last_partial = ""
        self.draft: Optional[str] = None

        pub.subscribe(self.on_state, f"{prefix}.state")
        pub.subscribe(self.on_partial, f"{prefix}.partial")
        pub.subscribe(self.on_draft, f"{prefix}.draft")
        pub.subscribe(self.on_toast, f"{prefix}.toast")
        if show_levels:
            pub.subscribe(self.on_frame, f"{prefix}.frame")

    def on_state(self, state: VoiceState) -> None:
        label, style = STATE_STYLES.get(state, (state.value, "bold"))
        self.console.print(label, style=style)

    def on_frame(self, frame: AudioFrame) -> None:
        filled = int(round(frame.amplitude * LEVEL_WIDTH))
        bar = "█" * filled + "·" * (LEVEL_WIDTH - filled)
        self.console.print(f"[green]{bar}[/green] centroid {frame.centroid:.2f}", highlight=False)

    def on_partial(self, text: str) -> None:
        if text == self.last_partial:
            return
        self.last_partial = text
        self.console.print(f"… {text}", style="dim")

    def on_draft(self, text: str) -> None:
        self.draft = text
        self.console.print(Panel(Text(text), title="Draft", border_style="green"))

    def on_toast(self, message: str) -> None:
        self.console.print(f"❌ {message}", style="bold red")

    def show_reply(self, reply: WebhookReply) -> None:
        """Render a workflow reply: text, summary, plan and sources."""
        self.console.print(Panel(Text(reply.resolve_text() or ""), title="Reply", border_style="blue"))
        result = reply.result
        if result is None:
            return
        if result.summary:
            self.console.print(f"Summary: {result.summary}", style="italic")
        for item in result.visible_plan():
            mark = "✅" if item.done else "⬜"
            self.console.print(f"{mark} {item.title}")
        for source in result.visible_sources():
            self.console.print(f"🔗 {source.title} ({source.url})")
