import logging
import sys
from pathlib import Path

import pytest

np = pytest.importorskip("numpy")
pd = pytest.importorskip("pandas")
pytest.importorskip("joblib")

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from als_recommender import model_utils, run_demo


def _write_ratings(path):
    pd.DataFrame(
        [
            {"user_id": "u1", "item_id": "a", "rating": 5},
            {"user_id": "u1", "item_id": "b", "rating": 3},
            {"user_id": "u2", "item_id": "b", "rating": 4},
            {"user_id": "u3", "item_id": "c", "rating": 2},
            {"user_id": "u3", "item_id": "a", "rating": 1},
        ]
    ).to_csv(path, index=False)
    return path


def test_load_ratings_pivots_long_format(tmp_path):
    path = _write_ratings(tmp_path / "ratings.csv")

    Q, user_ids, item_ids = model_utils.load_ratings(path)

    assert user_ids == ["u1", "u2", "u3"]
    assert item_ids == ["a", "b", "c"]
    assert Q.shape == (3, 3)
    assert Q[0, 0] == 5 and Q[0, 1] == 3
    assert Q[1, 1] == 4
    assert np.isnan(Q[1, 0]) and np.isnan(Q[1, 2])


def test_load_ratings_reports_missing_inputs(tmp_path):
    with pytest.raises(model_utils.MissingDataError):
        model_utils.load_ratings(tmp_path / "nope.csv")

    bad = tmp_path / "bad.csv"
    pd.DataFrame([{"user_id": "u1", "score": 3}]).to_csv(bad, index=False)
    with pytest.raises(model_utils.MissingDataError):
        model_utils.load_ratings(bad)

    other = tmp_path / "ratings.txt"
    other.write_text("user_id,item_id,rating\n")
    with pytest.raises(ValueError):
        model_utils.load_ratings(other)


def test_build_and_load_artifact(tmp_path):
    ratings = _write_ratings(tmp_path / "ratings.csv")
    artifact_path = tmp_path / "artifacts" / "als.joblib"

    out = model_utils.build_cf_model(
        ratings,
        artifact_path,
        factors=2,
        regularization=0.1,
        iterations=5,
        random_state=0,
    )

    assert out == artifact_path.resolve()
    artifact = model_utils.load_cf_artifact(out)
    assert artifact["user_factors"].shape == (3, 2)
    assert artifact["item_factors"].shape == (2, 3)
    assert artifact["i_codes"] == {"a": 0, "b": 1, "c": 2}
    assert artifact["params"]["factors"] == 2

    recs = model_utils.recommend_from_artifact(artifact, "u2", n=1)
    assert recs[0].name in {"a", "c"}
    assert model_utils.recommend_from_artifact(artifact, "nobody") is None


def test_load_missing_artifact(tmp_path):
    with pytest.raises(model_utils.MissingArtifactError):
        model_utils.load_cf_artifact(tmp_path / "missing.joblib")


def test_run_demo_logs_recommendations(caplog):
    caplog.set_level(logging.INFO)

    run_demo.main()

    assert "Weighted error after fitting" in caplog.text
    assert caplog.text.count("will like product") == 5
