"""I/O utilities for loading robot presets.

The packaged presets live in ``presets/`` as XML files.
"""

from .preset_parser import available_presets, load_preset, load_preset_file

__all__ = ["available_presets", "load_preset", "load_preset_file"]
