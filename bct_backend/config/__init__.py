"""Configuration module for the BCT admin backend."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
