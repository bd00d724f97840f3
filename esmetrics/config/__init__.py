"""Reporter configuration: immutable config value, env adapter, file loader."""
from .loader import load_config_file, validate_config
from .reporter_config import ReporterConfig

__all__ = ["ReporterConfig", "load_config_file", "validate_config"]
