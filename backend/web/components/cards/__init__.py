"""
Card components for StudyCore.
"""

from .tutor_level import TutorLevelCard

__all__ = ["TutorLevelCard"]
