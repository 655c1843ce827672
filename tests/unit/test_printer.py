"""Unit tests for the report printer."""

from structlog.testing import capture_logs

from powercanary.report import ReportPrinter
from powercanary.report.printer import ENDING, SECTION_DIVIDER, TITLE


class TestReportPrinterFormat:
    """The exact characters are parsed downstream."""

    def test_title_and_ending_literals(self):
        assert TITLE == "*" * 42 + " PowerTest " + "*" * 41
        assert len(ENDING) == 94 and set(ENDING) == {"*"}
        assert SECTION_DIVIDER == "+ " + "-" * 92

    def test_section_and_subsection(self):
        printer = ReportPrinter(lambda text: None)
        printer.create_section("awake").create_subsection("alarm")

        assert str(printer) == SECTION_DIVIDER + "\n| awake :\n|   <alarm>\n"

    def test_key_value_and_free_lines(self):
        printer = ReportPrinter(lambda text: None)
        printer.write_line("inc_scan_count", 3).write_line("free text")

        assert str(printer) == "|   -> inc_scan_count\t= 3\n|   -> free text\n"

    def test_zero_value_is_still_key_value(self):
        printer = ReportPrinter(lambda text: None)
        printer.write_line("inc", 0)
        assert str(printer) == "|   -> inc\t= 0\n"

    def test_full_lifecycle(self):
        printer = ReportPrinter(lambda text: None)
        printer.write_title()
        printer.append("x").tab().append(1).enter()
        printer.write_ending()

        assert str(printer) == TITLE + "\nx\t1\n" + ENDING

    def test_clear_empties_buffer(self):
        printer = ReportPrinter(lambda text: None)
        printer.write_title()
        printer.clear()
        assert str(printer) == ""


class TestReportPrinterDump:
    """Test handing reports to the sink."""

    def test_dump_passes_text_to_sink(self, reports):
        printer = ReportPrinter(reports)
        printer.write_title().write_ending()

        assert printer.dump() is True
        assert reports == [TITLE + "\n" + ENDING]

    def test_failing_sink_is_logged_not_raised(self):
        def broken_sink(text):
            raise OSError("disk full")

        printer = ReportPrinter(broken_sink)
        printer.write_title()

        with capture_logs() as logs:
            assert printer.dump() is False

        failures = [entry for entry in logs if entry["event"] == "report_dump_failed"]
        assert len(failures) == 1
        assert failures[0]["log_level"] == "error"
        assert failures[0]["error"] == "disk full"

    def test_default_sink_logs_report(self):
        printer = ReportPrinter()
        printer.write_title()

        with capture_logs() as logs:
            assert printer.dump()

        reports = [entry for entry in logs if entry["event"] == "power_report"]
        assert reports and reports[0]["report"] == "\t\n" + TITLE + "\n"
