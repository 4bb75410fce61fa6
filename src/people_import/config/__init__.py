from .loader import ConfigError, ImportConfig, LimitsConfig, ServiceConfig, load_config

__all__ = ["ConfigError", "ImportConfig", "LimitsConfig", "ServiceConfig", "load_config"]
