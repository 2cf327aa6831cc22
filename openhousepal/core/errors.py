class OpenHousePalError(Exception):
    """Base error for the showcase client"""


class InteractionError(OpenHousePalError):
    """Action is not possible in the current view (no collection, unknown property...)"""


class ValidationError(OpenHousePalError):
    """Form is invalid; the message is shown inline and nothing is sent"""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.message = message
        self.field = field
