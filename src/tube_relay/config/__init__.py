"""Application configuration."""

from tube_relay.config.settings import AppConfig

__all__ = ["AppConfig"]
