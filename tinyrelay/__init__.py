from .Core.header import RelayConfig, SocksProxy
from .TinyRelayServer import TinyRelayServer

__version__ = "1.0.0"

__all__ = ["RelayConfig", "SocksProxy", "TinyRelayServer"]
