"""Memory bank configuration — environment and YAML settings."""

from memorybank.config.settings import MemoryBankSettings, get_settings, load_settings

__all__ = [
    "MemoryBankSettings",
    "get_settings",
    "load_settings",
]
