"""Configuration schema and YAML loader."""

from tradeassist.config.loader import ConfigError, load_config, save_config
from tradeassist.config.schema import TradeAssistConfig

__all__ = ["ConfigError", "TradeAssistConfig", "load_config", "save_config"]
