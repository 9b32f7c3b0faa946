"""Session reporting for hueping.

Contains:
- SessionReport: Summary printed once the ping loop has exited
"""

from dataclasses import dataclass

from rich.text import Text

from probe.render import label, render_rtt
from probe.report import Report
from session.result import SessionResult


@dataclass
class SessionReport(Report):
    """Final ping statistics."""

    result: SessionResult

    def lines(self) -> list[Text]:
        """Render the statistics summary."""
        r = self.result
        s = r.stats
        lines: list[Text] = []

        if r.error is not None:
            lines.append(label(f"Session: FAILED ({r.error})"))

        lines.append(label(f"{r.destination} ping statistics"))
        lines.append(
            label(
                f"transmitted={s.transmitted} received={s.received} "
                f"loss={s.loss_percent:.4f}%"
            )
        )
        lines.append(
            Text.assemble(
                label("min="),
                render_rtt(s.reported_min_us),
                label("ms max="),
                render_rtt(s.reported_max_us),
                label("ms avg="),
                render_rtt(s.avg_rtt_us),
                label("ms"),
            )
        )
        return lines

    def success(self) -> bool:
        """Return True if at least one probe was answered (or none were sent)."""
        return self.result.success
