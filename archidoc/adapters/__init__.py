from .base import ADAPTERS, Adapter, AdapterOutput, get_adapter, register_adapter
from .python import PythonAdapter

__all__ = [
    "ADAPTERS",
    "Adapter",
    "AdapterOutput",
    "PythonAdapter",
    "get_adapter",
    "register_adapter",
]
