"""Chain data access over JSON-RPC."""

from .client import DataSourceFactory, SolanaRpcClient, SolanaRpcDataSource
from .data_source import DataSource

__all__ = ["DataSource", "DataSourceFactory", "SolanaRpcClient", "SolanaRpcDataSource"]
