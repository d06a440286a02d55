"""
StudyTrust

Trust scoring for scientific studies: normalize, verify, analyze and score.
"""

__version__ = "0.1.0"

from studytrust.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
