class EmbVizError(Exception):
    "Base exception for all application-specific errors."
    pass


class ConfigurationError(EmbVizError):
    pass


class DataValidationError(EmbVizError):
    pass


class EarthEngineError(EmbVizError):
    pass


class ExportError(EmbVizError):
    pass


class ExportNotFoundError(ExportError):
    """
    Raised when no exported file in the Drive folder matches an expected name.

    Parameters
    ----------
    label : str
        What was being looked for, e.g. ``"K=5"`` or ``"year 2018"``.
    """

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"could not find exported file for {label} in Drive folder.")


class DriveError(EmbVizError):
    pass


class VisualizationError(EmbVizError):
    pass


class PipelineError(EmbVizError):
    pass
