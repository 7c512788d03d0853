from .io import read_wide_csv
from .logging import get_logger

__all__ = ["get_logger", "read_wide_csv"]
