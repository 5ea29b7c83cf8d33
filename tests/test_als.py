import sys
from pathlib import Path

import pytest

np = pytest.importorskip("numpy")
sparse = pytest.importorskip("scipy.sparse")

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from als_recommender import als
from als_recommender.errors import DegenerateInputWarning, NumericalError, PreconditionError
from als_recommender.evaluation import reconstruction_error
from als_recommender.mask import build_mask

DEMO = np.array(
    [
        [5, 5, 5, 5, 1],
        [0, 0, 0, 4, 1],
        [1, 2, 3, 3, 1],
        [2, 2, 2, 1, 0],
        [5, 2, 5, 1, 0],
    ],
    dtype=float,
)


def _objective(Q, W, X, Y, reg):
    return reconstruction_error(W, Q, X, Y) + reg * (np.sum(X ** 2) + np.sum(Y ** 2))


def test_build_mask_marks_zero_and_nan_as_missing():
    Q = np.array([[5.0, 0.0, np.nan], [0.0, 1.5, -2.0]])
    original = Q.copy()

    W = build_mask(Q)

    np.testing.assert_array_equal(W, [[1, 0, 0], [0, 1, 1]])
    np.testing.assert_array_equal(Q, original)


def test_build_mask_rejects_non_matrix_input():
    with pytest.raises(PreconditionError):
        build_mask(np.array([1.0, 2.0, 3.0]))


def test_initialize_factors_shapes_range_and_seed():
    X, Y = als.initialize_factors(4, 6, 3, random_state=11)

    assert X.shape == (4, 3)
    assert Y.shape == (3, 6)
    assert X.min() >= 0 and X.max() < 5
    assert Y.min() >= 0 and Y.max() < 5

    X2, Y2 = als.initialize_factors(4, 6, 3, random_state=np.random.default_rng(11))
    np.testing.assert_array_equal(X, X2)
    np.testing.assert_array_equal(Y, Y2)


def test_initialize_factors_rejects_zero_rank():
    with pytest.raises(PreconditionError):
        als.initialize_factors(4, 6, 0)


@pytest.mark.parametrize("weighted", [True, False])
def test_fit_returns_expected_shapes(weighted):
    Q = np.arange(24, dtype=float).reshape(4, 6) % 5

    X, Y = als.fit(Q, 3, 4, 0.1, random_state=3, weighted=weighted)

    assert X.shape == (4, 3)
    assert Y.shape == (3, 6)
    assert (X @ Y).shape == Q.shape


def test_zero_iterations_returns_initial_factors():
    X, Y = als.fit(DEMO, 3, 0, 0.1, random_state=7)
    X0, Y0 = als.initialize_factors(5, 5, 3, random_state=7)

    np.testing.assert_array_equal(X, X0)
    np.testing.assert_array_equal(Y, Y0)


def test_fit_is_deterministic_and_leaves_input_untouched():
    Q = DEMO.copy()
    Q[1, 0] = np.nan
    original = Q.copy()

    first = als.fit(Q, 2, 5, 0.1, random_state=5)
    second = als.fit(Q, 2, 5, 0.1, random_state=5)

    np.testing.assert_array_equal(first[0], second[0])
    np.testing.assert_array_equal(first[1], second[1])
    np.testing.assert_array_equal(Q, original)


def test_weighted_objective_never_increases():
    W = build_mask(DEMO)
    reg = 0.1
    objectives = []
    for iterations in range(0, 7):
        X, Y = als.fit(DEMO, 3, iterations, reg, random_state=1)
        objectives.append(_objective(DEMO, W, X, Y, reg))

    for before, after in zip(objectives, objectives[1:]):
        assert after <= before + 1e-8 * max(1.0, before)


def test_dense_objective_never_increases():
    ones = np.ones_like(DEMO)
    reg = 0.1
    objectives = []
    for iterations in range(0, 7):
        X, Y = als.fit(DEMO, 3, iterations, reg, random_state=2, weighted=False)
        objectives.append(_objective(DEMO, ones, X, Y, reg))

    for before, after in zip(objectives, objectives[1:]):
        assert after <= before + 1e-8 * max(1.0, before)


def test_track_error_records_every_iteration():
    model = als.AlternatingLeastSquares(
        factors=3, regularization=0.1, iterations=4, random_state=0, track_error=True
    ).fit(DEMO)

    assert len(model.error_history) == 4
    assert model.error_history[-1] == pytest.approx(model.training_error)
    assert model.error() == pytest.approx(model.training_error)


@pytest.mark.parametrize("weighted", [True, False])
def test_regularization_keeps_constant_matrix_solvable(weighted):
    Q = np.full((4, 4), 3.0)

    X, Y = als.fit(Q, 4, 10, 0.1, random_state=0, weighted=weighted)

    assert np.isfinite(X).all()
    assert np.isfinite(Y).all()


def test_singular_system_aborts_fit():
    model = als.AlternatingLeastSquares(
        factors=2, regularization=0.0, iterations=3, random_state=0, weighted=False
    )

    # all-zero ratings drive X to 0, leaving X^T X + 0*I singular
    with pytest.warns(DegenerateInputWarning):
        with pytest.raises(NumericalError):
            model.fit(np.zeros((3, 3)))

    assert model.fitted is False
    assert model.user_factors is None
    assert model.item_factors is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"factors": 0},
        {"iterations": -1},
        {"regularization": -0.1},
    ],
)
def test_invalid_parameters_raise_precondition_error(kwargs):
    params = {"factors": 2, "iterations": 1, "regularization": 0.1}
    params.update(kwargs)

    with pytest.raises(PreconditionError):
        als.fit(DEMO, **params)


@pytest.mark.parametrize(
    "matrix",
    [
        np.array([1.0, 2.0]),
        np.zeros((0, 3)),
        np.array([[1.0, np.inf], [2.0, 3.0]]),
    ],
)
def test_invalid_matrix_raises_precondition_error(matrix):
    with pytest.raises(PreconditionError) as excinfo:
        als.fit(matrix, 1, 1, 0.1)
    assert not isinstance(excinfo.value, NumericalError)


@pytest.mark.parametrize("weighted", [True, False])
def test_demo_matrix_single_iteration(weighted):
    X, Y = als.fit(DEMO, 5, 1, 0.1, random_state=0, weighted=weighted)

    assert X.shape == (5, 5)
    assert Y.shape == (5, 5)

    err = reconstruction_error(build_mask(DEMO), DEMO, X, Y)
    assert np.isfinite(err)
    assert err >= 0.0


def test_user_without_ratings_gets_zero_factor():
    Q = DEMO.copy()
    Q[3] = 0.0

    with pytest.warns(DegenerateInputWarning):
        model = als.AlternatingLeastSquares(
            factors=2, regularization=0.1, iterations=3, random_state=0
        ).fit(Q)

    np.testing.assert_array_equal(model.degenerate_users, [3])
    assert model.degenerate_items.size == 0
    np.testing.assert_array_equal(model.user_factors[3], np.zeros(2))


def test_refit_raises():
    model = als.AlternatingLeastSquares(factors=2, iterations=1).fit(DEMO)

    with pytest.raises(RuntimeError):
        model.fit(DEMO)


def test_unfitted_model_helpers_raise():
    model = als.AlternatingLeastSquares(factors=2)

    with pytest.raises(RuntimeError):
        model.reconstruct()


def test_sparse_input_matches_dense():
    dense = als.fit(DEMO, 2, 3, 0.1, random_state=4)
    from_sparse = als.fit(sparse.csr_matrix(DEMO), 2, 3, 0.1, random_state=4)

    np.testing.assert_allclose(dense[0], from_sparse[0])
    np.testing.assert_allclose(dense[1], from_sparse[1])


def test_model_recommend_skips_rated_items():
    model = als.AlternatingLeastSquares(
        factors=3, regularization=0.1, iterations=10, random_state=0
    ).fit(DEMO)

    recs = model.recommend(1, n=2, item_names=["a", "b", "c", "d", "e"])

    assert len(recs) == 2
    assert {r.index for r in recs} <= {0, 1, 2}
    assert recs[0].score >= recs[1].score
    assert recs[0].name == "abcde"[recs[0].index]
    assert 0.0 <= model.predict(1, 0) <= DEMO.max() + 1e-9
