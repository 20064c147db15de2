"""mandate-dce-calculator core package."""

from .config import build_calculator, load_config

__all__ = ["load_config", "build_calculator"]
