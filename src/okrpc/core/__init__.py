from okrpc.core.config import Config, load_config_from_env
from okrpc.core.logging import get_logger

__all__ = [
    "Config",
    "get_logger",
    "load_config_from_env",
]
