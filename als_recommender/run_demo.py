"""
Fit ALS on a small hand-written rating matrix and report the results.

Steps:
1. Build the 5x5 demo matrix (0 = not rated)
2. Log the weighted error of a random initialization
3. Fit ALS and log the weighted error again
4. Log each user's best item and top-N list
"""

import logging
import sys

import numpy as np

from config.settings import settings
from als_recommender.als import AlternatingLeastSquares, initialize_factors
from als_recommender.evaluation import reconstruction_error
from als_recommender.mask import build_mask
from als_recommender.ranking import best_items, top_n

# Users are rows, movies are columns
DEMO_RATINGS = np.array(
    [
        [5, 5, 5, 5, 1],
        [0, 0, 0, 4, 1],
        [1, 2, 3, 3, 1],
        [2, 2, 2, 1, 0],
        [5, 2, 5, 1, 0],
    ],
    dtype=float,
)

DEMO_ITEMS = ["movie_0", "movie_1", "movie_2", "movie_3", "movie_4"]


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def main():
    configure_logging()
    log = logging.getLogger("als_recommender.run_demo")

    Q = DEMO_RATINGS
    W = build_mask(Q)

    X0, Y0 = initialize_factors(*Q.shape, settings.ALS_FACTORS, settings.ALS_RANDOM_STATE)
    log.info("Weighted error before fitting: %.4f", reconstruction_error(W, Q, X0, Y0))

    model = AlternatingLeastSquares(
        factors=settings.ALS_FACTORS,
        regularization=settings.ALS_REGULARIZATION,
        iterations=settings.ALS_ITERATIONS,
        random_state=settings.ALS_RANDOM_STATE,
        weighted=settings.ALS_WEIGHTED,
    ).fit(Q)

    q_hat = model.reconstruct()
    log.info("Weighted error after fitting: %.4f", model.training_error)
    log.info("Reconstructed matrix:\n%s", np.array2string(q_hat, precision=2))

    for user, item in enumerate(best_items(Q, q_hat)):
        log.info("User w/ID: %d will like product w/ID: %d", user, item)

    n = min(settings.TOP_N, Q.shape[1])
    for user in range(Q.shape[0]):
        recs = top_n(Q, q_hat, user, n, item_names=DEMO_ITEMS)
        log.info(
            "User %d top-%d: %s",
            user, n, ", ".join(f"{r.name} ({r.score:.2f})" for r in recs),
        )


if __name__ == "__main__":
    main()
