from .config import RelayConfig, load_config
from .errors import RelayError

__all__ = ["RelayConfig", "load_config", "RelayError"]
