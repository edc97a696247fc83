from .logging import enable_logging, getLogger, parse_log_level

__all__ = ["enable_logging", "getLogger", "parse_log_level"]
