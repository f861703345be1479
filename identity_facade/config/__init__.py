"""Configuration module for the identity facade."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
