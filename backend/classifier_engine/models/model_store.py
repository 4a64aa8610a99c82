"""
Model persistence and versioning.

Handles saving and loading trained models with metadata tracking.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Tuple

from shared.config import settings

from .maxent_model import GISModel
from .model_reader import read_model
from .model_writer import write_model

logger = logging.getLogger(__name__)


class ModelStore:
    """
    Manage model persistence and versioning.

    Saves models in the binary GIS format to the local filesystem, with a
    JSON metadata file next to each model.
    """

    def __init__(self, models_dir: Optional[str] = None):
        """
        Initialize model store.

        Args:
            models_dir: Directory for saved models (default from settings)
        """
        self.models_dir = Path(models_dir or settings.models_dir)
        self.models_dir.mkdir(parents=True, exist_ok=True)

    def save(
        self,
        model: GISModel,
        name: str,
        version: str,
        metadata: Optional[Dict] = None,
    ) -> str:
        """
        Save model and metadata to disk.

        Args:
            model: Trained model
            name: Model name (e.g., "doccat")
            version: Model version (e.g., "v1")
            metadata: Additional metadata (metrics, parameters)

        Returns:
            Path to saved model file
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        model_filename = f"{name}_{version}_{timestamp}.bin"
        metadata_filename = f"{name}_{version}_{timestamp}_metadata.json"

        model_path = self.models_dir / model_filename
        metadata_path = self.models_dir / metadata_filename

        try:
            write_model(model, model_path)
        except Exception:
            # A partially written model must not be picked up later
            model_path.unlink(missing_ok=True)
            raise

        metadata_full = {
            "name": name,
            "version": version,
            "timestamp": timestamp,
            "model_type": model.model_type,
            "outcome_labels": list(model.outcome_labels),
            "n_outcomes": model.num_outcomes,
            "n_predicates": len(model.predicates),
            "training_report": dict(model.training_report),
            **(metadata or {}),
        }

        with open(metadata_path, "w") as f:
            json.dump(metadata_full, f, indent=2, default=str)

        logger.info(f"Model saved to {model_path}")
        logger.info(f"Metadata saved to {metadata_path}")

        return str(model_path)

    def load(self, model_path: str) -> Tuple[GISModel, Dict]:
        """
        Load model and metadata from disk.

        Args:
            model_path: Path to model file

        Returns:
            Tuple of (model, metadata)
        """
        model_path = Path(model_path)

        if not model_path.exists():
            raise FileNotFoundError(f"Model not found: {model_path}")

        model = read_model(model_path)

        metadata_path = model_path.with_name(model_path.stem + "_metadata.json")

        if metadata_path.exists():
            with open(metadata_path, "r") as f:
                metadata = json.load(f)
        else:
            metadata = {}

        model.training_report.update(metadata.get("training_report", {}))

        logger.info(f"Model loaded from {model_path}")

        return model, metadata

    def get_latest_model(self, name: str, version: str = "v1") -> Optional[str]:
        """
        Get path to latest model.

        Args:
            name: Model name
            version: Model version (default "v1")

        Returns:
            Path to latest model file, or None if not found
        """
        pattern = f"{name}_{version}_*.bin"
        model_files = sorted(self.models_dir.glob(pattern), reverse=True)

        if model_files:
            return str(model_files[0])

        return None
