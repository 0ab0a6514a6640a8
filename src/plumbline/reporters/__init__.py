from plumbline.reporters.rich_reporter import print_report, report_failure, report_success

__all__ = ["print_report", "report_failure", "report_success"]
