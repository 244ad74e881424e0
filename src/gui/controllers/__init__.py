"""
GUI Controllers - panel backends kept out of the widgets.
"""

from .preset_controller import PresetController

__all__ = [
    'PresetController',
]
