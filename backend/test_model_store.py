#!/usr/bin/env python3
"""
Test model storage, evaluation and prediction.

Tests:
1. Model persistence (save/load, latest model lookup)
2. Evaluation metrics and outcome distribution
3. Prediction with stored models
4. Training service end to end
"""

import json
import sys
from pathlib import Path

import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from classifier_engine.events import Event, write_event_file
from classifier_engine.models import (
    EventTrainer,
    GISModel,
    ModelEvaluator,
    ModelStore,
    Predicate,
    Predictor,
    TrainingParameters,
)
from classifier_engine.training import TrainingService, load_events
from classifier_engine.training.main import main as run_training
from shared.config import settings
from shared.errors import InsufficientTrainingDataError


def training_events():
    events = []
    for _ in range(6):
        events.append(Event("yes", ["good", "great"]))
        events.append(Event("no", ["bad", "awful"]))
    return events


@pytest.fixture
def trained_model():
    return EventTrainer({"Cutoff": 1, "Iterations": 50}).train(training_events())


def test_save_and_load(tmp_path, trained_model):
    store = ModelStore(str(tmp_path / "models"))
    model_path = store.save(trained_model, "sentiment", "v1", {"note": "test"})

    assert model_path.endswith(".bin")
    model, metadata = store.load(model_path)

    assert model == trained_model
    assert metadata["name"] == "sentiment"
    assert metadata["note"] == "test"
    assert metadata["outcome_labels"] == ["yes", "no"]
    assert metadata["n_predicates"] == 4
    assert metadata["training_report"]["Algorithm"] == "MAXENT"
    assert model.training_report["Training-Eventhash"] == trained_model.training_report["Training-Eventhash"]


def test_load_missing_model(tmp_path):
    store = ModelStore(str(tmp_path))

    with pytest.raises(FileNotFoundError):
        store.load(str(tmp_path / "missing.bin"))


def test_get_latest_model(tmp_path, trained_model):
    store = ModelStore(str(tmp_path))

    assert store.get_latest_model("sentiment", "v1") is None

    first = store.save(trained_model, "sentiment", "v1")
    second = store.save(trained_model, "sentiment", "v1")
    store.save(trained_model, "sentiment", "v2")

    assert store.get_latest_model("sentiment", "v1") == max(first, second)


def test_evaluate(trained_model):
    metrics = ModelEvaluator(trained_model).evaluate(training_events())

    assert metrics["accuracy"] == 1.0
    assert metrics["f1_score"] == 1.0
    assert metrics["total_events"] == 12
    assert metrics["labels"] == ["no", "yes"]
    assert metrics["confusion_matrix"] == [[6, 0], [0, 6]]


def test_evaluate_needs_events(trained_model):
    with pytest.raises(ValueError):
        ModelEvaluator(trained_model).evaluate([])


def test_outcome_distribution():
    events = training_events() + [Event("yes", ["good"])]
    distribution = ModelEvaluator.outcome_distribution(events)

    assert distribution["total"] == 13
    assert distribution["counts"] == {"yes": 7, "no": 6}
    assert distribution["percentages"]["no"] == pytest.approx(6 / 13 * 100)


def test_predictor(tmp_path, trained_model):
    store = ModelStore(str(tmp_path))
    store.save(trained_model, "sentiment", "v1")

    predictor = Predictor("sentiment", confidence_threshold=0.6, store=store)
    result = predictor.predict(["good", "great"])

    assert result["outcome"] == "yes"
    assert result["confidence"] > 0.6
    assert result["meets_threshold"] is True
    assert set(result["probabilities"]) == {"yes", "no"}

    unsure = predictor.predict(["unknown"])
    assert unsure["confidence"] == 0.5
    assert unsure["meets_threshold"] is False


def test_predictor_without_model(tmp_path):
    with pytest.raises(ValueError):
        Predictor("missing", store=ModelStore(str(tmp_path)))


def test_model_rejects_invalid_tables():
    with pytest.raises(ValueError):
        GISModel(["only"], {})
    with pytest.raises(ValueError):
        GISModel(["A", "A"], {})
    with pytest.raises(ValueError):
        GISModel(["A", "B"], {"p": Predicate((2,), (1.0,))})
    with pytest.raises(ValueError):
        Predicate((0, 1), (1.0,))


def test_training_service_with_event_file(tmp_path):
    data_path = tmp_path / "train.events"
    write_event_file(data_path, training_events())

    store = ModelStore(str(tmp_path / "models"))
    service = TrainingService(
        TrainingParameters(cutoff=1, iterations=30), store=store, evaluate=True
    )
    model_path = service.run(data_path, "events", name="sentiment", version="v2")

    model, metadata = store.load(model_path)
    assert model == service.model
    assert metadata["metrics"]["train"]["accuracy"] == 1.0
    assert metadata["metrics"]["outcome_distribution"]["total"] == 12
    assert metadata["parameters"]["Cutoff"] == "1"
    assert metadata["parameters"]["sort"] == "true"

    with open(model_path.replace(".bin", "_metadata.json")) as f:
        assert json.load(f)["training_data_format"] == "events"


def test_training_service_with_doccat_file(tmp_path):
    data_path = tmp_path / "doccat.train"
    lines = ["sports ball goal team", "politics vote law party"] * 4
    data_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    service = TrainingService(
        TrainingParameters(cutoff=1), store=ModelStore(str(tmp_path / "models")), evaluate=False
    )
    service.run(data_path, "doccat", name="doccat", version="v1")

    assert service.metrics == {}
    assert service.model.get_best_outcome(service.model.eval(["bow=vote"])) == "politics"


def test_training_service_propagates_insufficient_data(tmp_path):
    data_path = tmp_path / "train.events"
    write_event_file(data_path, [Event("yes", ["good"])] * 3)

    store = ModelStore(str(tmp_path / "models"))
    service = TrainingService(TrainingParameters(cutoff=1), store=store)

    with pytest.raises(InsufficientTrainingDataError):
        service.run(data_path, "events")

    assert list(Path(store.models_dir).iterdir()) == []


def test_load_events_rejects_unknown_format(tmp_path):
    with pytest.raises(ValueError):
        load_events(tmp_path / "x", "csv")


def test_main_reports_missing_training_data(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "models_dir", str(tmp_path / "models"))
    monkeypatch.setattr(settings, "training_data_path", str(tmp_path / "missing.events"))
    monkeypatch.setattr(settings, "training_data_format", "events")

    assert run_training() == 1


def test_main_trains_configured_data(tmp_path, monkeypatch):
    data_path = tmp_path / "train.events"
    write_event_file(data_path, training_events())

    monkeypatch.setattr(settings, "models_dir", str(tmp_path / "models"))
    monkeypatch.setattr(settings, "training_data_path", str(data_path))
    monkeypatch.setattr(settings, "training_data_format", "events")
    monkeypatch.setattr(settings, "training_cutoff", 1)
    monkeypatch.setattr(settings, "training_iterations", 20)

    assert run_training() == 0
    assert len(list((tmp_path / "models").glob("*.bin"))) == 1
