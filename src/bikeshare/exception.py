import sys


def error_message_detail(error: Exception, error_detail: sys) -> str:
    """
    Build an error message carrying the file name and line number where the
    exception was raised.

    Args:
        error (Exception): The original exception.
        error_detail (sys): The sys module, used to read the active traceback.

    Returns:
        str: The formatted error message.
    """
    _, _, exc_tb = error_detail.exc_info()
    if exc_tb is None:
        return f"Error occurred: [{error}]"

    while exc_tb.tb_next is not None:
        exc_tb = exc_tb.tb_next
    file_name = exc_tb.tb_frame.f_code.co_filename
    return (
        f"Error occurred in python script name [{file_name}] "
        f"line number [{exc_tb.tb_lineno}] error message [{error}]"
    )


class CustomException(Exception):
    """Wraps unexpected errors raised inside the pipeline stages."""

    def __init__(self, error_message: Exception, error_detail: sys):
        super().__init__(str(error_message))
        self.error_message = error_message_detail(error_message, error_detail=error_detail)

    def __str__(self) -> str:
        return self.error_message


class BikeShareError(Exception):
    """Base class for the domain errors of the modelling workflow."""


# Configuration errors: raised before any fitting starts.
class InvalidFraction(BikeShareError, ValueError):
    pass


class UnknownColumn(BikeShareError, KeyError):
    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class UnsupportedMode(BikeShareError, ValueError):
    pass


class UnsupportedEngine(BikeShareError, ValueError):
    pass


class UnknownArgument(BikeShareError, ValueError):
    pass


class InvalidFoldCount(BikeShareError, ValueError):
    pass


class InvalidGrid(BikeShareError, ValueError):
    pass


# Data conditions surfacing during a fit.
class DegenerateColumn(BikeShareError, ValueError):
    pass


class FitFailure(BikeShareError, RuntimeError):
    pass


class ScoreFailure(BikeShareError, RuntimeError):
    pass


class NoUsableResult(BikeShareError, RuntimeError):
    """Every candidate failed on every resample."""
