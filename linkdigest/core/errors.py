"""
Pipeline Errors

Typed failures raised (or carried in result values) by the fetch, extraction
and transcription stages. Every message is prefixed with the stage or
provider that produced it, e.g. ``"yt-dlp: download timeout"``.
"""

from typing import List, Optional, Sequence


class PipelineError(Exception):
    """Base class for all linkdigest pipeline failures"""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")


class FetchTimeoutError(PipelineError):
    """Fetching a remote document did not finish in time"""

    def __init__(self, stage: str, timeout: float):
        self.timeout = timeout
        super().__init__(stage, f"timed out after {timeout:g}s")


class FetchHttpError(PipelineError):
    """Remote document answered with a non-success HTTP status"""

    def __init__(self, stage: str, status: int):
        self.status = status
        super().__init__(stage, f"request failed (status {status})")


class ScrapeUnavailableError(PipelineError):
    """Scrape backend failed; always downgraded to a diagnostic note"""


class DownloadFailedError(PipelineError):
    """Model artifact or media download failed"""


class CommandNotConfiguredError(PipelineError):
    """A provider needs an operator-supplied command that is not set"""

    def __init__(self, stage: str, env_var: str, hint: str = ""):
        self.env_var = env_var
        message = f"command not configured (set {env_var}"
        message += f" to {hint})" if hint else ")"
        super().__init__(stage, message)


class ProcessSpawnError(PipelineError):
    """The OS could not start the requested executable"""


class ProcessNonZeroExitError(PipelineError):
    """External command exited with a failure status"""

    def __init__(self, stage: str, exit_code: Optional[int], stderr: str = "",
                 signal_name: Optional[str] = None):
        self.exit_code = exit_code
        self.stderr = stderr
        self.signal_name = signal_name
        detail = stderr.strip() or "unknown error"
        if exit_code is None:
            message = f"terminated ({signal_name or 'unknown'}): {detail}"
        else:
            message = f"failed ({exit_code}): {detail}"
        super().__init__(stage, message)


class ProcessTimeoutError(PipelineError):
    """External command was killed after exceeding its timeout"""

    def __init__(self, stage: str, timeout: float):
        self.timeout = timeout
        super().__init__(stage, f"timed out after {timeout:g}s")


class EmptyProviderOutputError(PipelineError):
    """A provider finished successfully but produced no text"""

    def __init__(self, stage: str):
        super().__init__(stage, "returned empty text")


class AllProvidersExhaustedError(PipelineError):
    """Every candidate transcription provider failed"""

    def __init__(self, attempted: Sequence[str], reasons: Optional[List[str]] = None):
        self.attempted = list(attempted)
        self.reasons = list(reasons or [])
        tried = ", ".join(self.attempted) if self.attempted else "none"
        super().__init__("transcript", f"all providers failed (tried: {tried})")


class ResolutionTimeoutError(PipelineError):
    """Caller-supplied deadline for transcript resolution expired"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__("transcript", f"resolution timed out after {timeout:g}s")


def wrap_error(stage: str, error: BaseException) -> PipelineError:
    """Re-label an arbitrary exception with the stage that hit it"""
    if isinstance(error, PipelineError):
        wrapped = PipelineError(stage, str(error))
    else:
        wrapped = PipelineError(stage, str(error) or error.__class__.__name__)
    wrapped.__cause__ = error
    return wrapped
