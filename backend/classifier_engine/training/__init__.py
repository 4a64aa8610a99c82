"""
Model training service.

Trains models from training data files and stores them.
"""

from .training_service import TrainingService, load_events

__all__ = ["TrainingService", "load_events"]
