"""
Exceptions raised by the analysis pipeline.

Every stage fails fast: nothing here is caught and retried inside the
package, the whole run aborts with one of these.
"""


class PipelineError(Exception):
    """Base class for all pipeline failures."""


class InputDataError(PipelineError, ValueError):
    """Input file missing, unreadable, or structurally inconsistent."""


class DegenerateFeatureError(PipelineError, ValueError):
    """A feature with no variance was met during univariate scoring."""

    def __init__(self, feature: str):
        self.feature = feature
        super().__init__(
            f"Feature {feature!r} has zero variance; univariate Cox fit is undefined"
        )


class EmptySelectionError(PipelineError, LookupError):
    """No subject satisfies a stratum/event restriction."""

    def __init__(self, stratum, event_value):
        self.stratum = stratum
        self.event_value = event_value
        super().__init__(
            f"No subject with stratum={stratum!r} and event={event_value!r}"
        )
