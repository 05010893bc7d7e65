"""Configuration module: exports Settings and load_config."""

from knowbase.config.loader import load_config
from knowbase.config.settings import BasePaths, ModelNames, Settings

__all__ = ["BasePaths", "ModelNames", "Settings", "load_config"]
