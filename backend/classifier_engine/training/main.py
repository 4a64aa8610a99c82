#!/usr/bin/env python3
"""
Model Training - Entry Point

Trains a maximum entropy model from the configured training data file and
stores it in the model store.

Usage:
    TRAINING_DATA_PATH=data/train.events python -m classifier_engine.training.main
"""

import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from shared.config import settings
from shared.errors import ConfigurationError, InsufficientTrainingDataError
from classifier_engine.training import TrainingService

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def main() -> int:
    """Run one training job."""
    logger.info("=" * 70)
    logger.info("MODEL TRAINING")
    logger.info("=" * 70)

    if not settings.training_data_path:
        logger.error("No training data configured (set TRAINING_DATA_PATH)")
        return 1

    logger.info("Configuration:")
    logger.info(f"  Training data: {settings.training_data_path}")
    logger.info(f"  Format: {settings.training_data_format}")
    logger.info(f"  Algorithm: {settings.training_algorithm}")
    logger.info(f"  Data indexer: {settings.training_data_indexer}")
    logger.info(f"  Iterations: {settings.training_iterations}")
    logger.info(f"  Models dir: {settings.models_dir}")

    service = TrainingService()

    try:
        model_path = service.run(
            settings.training_data_path, settings.training_data_format
        )
    except (ConfigurationError, InsufficientTrainingDataError, OSError) as e:
        logger.error(f"Training failed: {e}")
        return 1

    logger.info(f"Model stored at {model_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
