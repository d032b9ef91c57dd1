class ReportError(Exception):
    """Base class for failures of a report computation."""


class ReportStoreError(ReportError):
    """A read against the record store failed; the whole report is abandoned."""


class ReportTimeoutError(ReportError):
    """The caller's deadline passed before all store reads completed."""


class InvalidReportParameter(ReportError, ValueError):
    """A report was requested with a malformed parameter (e.g. a bad month)."""
