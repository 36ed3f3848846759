"""Error taxonomy for the pipeline engine.

Transient errors are logged and retried on the next scheduled run,
validation errors go back to the caller, configuration errors abort.
"""


class PipelineError(Exception):
    """Base class for errors raised by the onboarding pipeline."""


class TransientExternalError(PipelineError):
    """Vendor or store hiccup; the record is skipped for this run."""


class NetworkError(TransientExternalError):
    pass


class AuthError(TransientExternalError):
    pass


class ValidationError(PipelineError):
    """Rejected input. Raised before any write happens."""

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self):
        out = {"error": self.message}
        if self.field:
            out["field"] = self.field
        return out


class CalendarExhaustedError(ValidationError):
    """No cohort start date left after today in the configured calendar."""


class NotFoundError(PipelineError):
    pass


class FatalConfigurationError(PipelineError):
    """Missing credentials or settings; the whole operation is aborted."""


class DataIntegrityWarning(UserWarning):
    """Unexpected stored or vendor data; the engine fell back to a safe state."""
