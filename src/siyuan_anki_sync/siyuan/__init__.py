"""SiYuan kernel API client."""

from .client import SiyuanClient

__all__ = ["SiyuanClient"]
