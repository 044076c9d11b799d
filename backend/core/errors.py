class PresentationError(Exception):
    """Base class for errors raised while building a presentation"""

class ValidationError(PresentationError):
    """Missing or invalid user input (e.g. an empty topic)"""

class GenerationError(PresentationError):
    """The text-generation provider could not be reached or failed"""

class FormatError(PresentationError):
    """The provider answered, but not with a usable outline"""

class ExportError(PresentationError):
    """The deck could not be rendered to a file"""

GENERATION_FAILED_MESSAGE = "Failed to generate presentation content. Please try again."
