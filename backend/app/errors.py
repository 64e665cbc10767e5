"""
Domain errors raised by the review and activation services.

Every error carries a stable machine-readable `code` so callers (the console
routers, the bot adapter) can react to each outcome distinctly.
"""


class ConsoleError(Exception):
    """Base class for all domain errors"""
    code = "console_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ConsoleError):
    """Malformed or missing input, detected before any mutation"""
    code = "validation_error"


class NotFoundError(ConsoleError):
    """Unknown order, code, group or user"""
    code = "not_found"


class InvalidStateTransition(ConsoleError):
    """Transition attempted from a state that does not allow it"""
    code = "invalid_state_transition"


class InvalidCodeFormat(ValidationError):
    code = "invalid_code_format"


class CodeNotFound(NotFoundError):
    code = "code_not_found"


class CodeExpired(ConsoleError):
    code = "code_expired"


class CodeAlreadyUsed(ConsoleError):
    code = "code_already_used"


class InvalidActivationCode(ConsoleError):
    """Supplied admin-group activation code does not match the standing code"""
    code = "invalid_activation_code"


class CodeGenerationError(ConsoleError):
    """No free activation code could be generated within the retry budget"""
    code = "code_generation_failed"
