"""
Custom exceptions for the Higgs + jets histogramming

All custom exceptions inherit from AnalysisError so a caller can catch
every analysis-specific failure with a single except clause.
"""


class AnalysisError(Exception):
    """
    Base exception for all analysis errors
    """
    pass


class MissingHiggsError(AnalysisError):
    """
    Raised when an event carries no particle with the Higgs PDG code

    Non-fatal: the processing loop skips the event and continues.
    """
    def __init__(self, entry=None):
        """
        Args:
            entry: Sequence position of the offending event, if known
        """
        self.entry = entry
        if entry is None:
            message = "No Higgs in event"
        else:
            message = f"No Higgs in entry {entry}"
        super().__init__(message)


class SourceError(AnalysisError):
    """
    Raised when the next event cannot be obtained or the output cannot be written

    Always fatal to the run. Examples:
    - Input file missing or corrupted
    - Tree or branch not found
    - More particles in an event than the declared capacity
    - Output file cannot be created
    """
    pass


class ConfigurationError(AnalysisError):
    """
    Raised when configuration is invalid or cannot be loaded
    """
    pass


class HistogramSetClosedError(AnalysisError):
    """
    Raised on a fill, merge or second finalize of a closed histogram set
    """
    pass
