"""
Module: sd_showcase.utils
Purpose: Helpers for init-image resolution, debouncing and output files
"""

from sd_showcase.utils.debounce import Debouncer, SpeechDebouncer
from sd_showcase.utils.image_source import resolve_init_image

__all__ = ["Debouncer", "SpeechDebouncer", "resolve_init_image"]
