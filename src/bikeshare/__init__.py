from bikeshare.logger import logging
from bikeshare.exception import CustomException

__version__ = "0.1.0"

__all__ = ["logging", "CustomException", "__version__"]
