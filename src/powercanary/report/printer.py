"""Line-oriented text builder for power reports.

The exact characters written here are parsed by downstream log tooling;
change them only together with those parsers.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

logger = structlog.get_logger(__name__)

TITLE = "****************************************** PowerTest *****************************************"
SECTION_DIVIDER = "+ --------------------------------------------------------------------------------------------"
ENDING = "*" * 94


def log_sink(text: str) -> None:
    """Default report sink: one structured log event per report."""
    logger.info("power_report", report="\t\n" + text)


class ReportPrinter:
    """Single-writer report buffer.

    Lifecycle: clear() -> write_title() -> create_section()/content ... ->
    write_ending() -> dump().
    """

    def __init__(self, sink=None) -> None:
        self._parts: list[str] = []
        self._sink = sink if sink is not None else log_sink

    @property
    def sink(self):
        return self._sink

    def append(self, obj: Any) -> "ReportPrinter":
        self._parts.append(str(obj))
        return self

    def tab(self) -> "ReportPrinter":
        self._parts.append("\t")
        return self

    def enter(self) -> "ReportPrinter":
        self._parts.append("\n")
        return self

    def write_title(self) -> "ReportPrinter":
        return self.append(TITLE).enter()

    def create_section(self, name: str) -> "ReportPrinter":
        self.append(SECTION_DIVIDER).enter()
        return self.append("| ").append(name).append(" :").enter()

    def create_subsection(self, name: str) -> "ReportPrinter":
        return self.append("|   <").append(name).append(">").enter()

    def write_line(self, key_or_line: Any, value: Optional[Any] = None) -> "ReportPrinter":
        """Write ``|   -> line`` or, with a value, ``|   -> key\\t= value``."""
        self.append("|   -> ").append(key_or_line)
        if value is not None:
            self.append("\t= ").append(value)
        return self.enter()

    def write_ending(self) -> "ReportPrinter":
        return self.append(ENDING)

    def clear(self) -> None:
        self._parts.clear()

    def dump(self) -> bool:
        """Hand the buffered text to the sink.

        Returns:
            True if the sink accepted the report, False if it failed.
        """
        try:
            self._sink(str(self))
            return True
        except Exception as e:
            logger.error("report_dump_failed", error=str(e), exc_info=True)
            return False

    def __str__(self) -> str:
        return "".join(self._parts)
