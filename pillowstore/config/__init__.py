"""
Pillow Store Data Layer
Configuration Module
"""
from .settings import LocalCacheSettings, RemoteSettings, Settings, get_settings

__all__ = ["Settings", "RemoteSettings", "LocalCacheSettings", "get_settings"]
