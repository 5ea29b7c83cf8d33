import os
from dotenv import load_dotenv

# Load .env when running locally
load_dotenv()

class Settings:
    # ─────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # ─────────────────────────────────────────────
    # ALS defaults (used by model_utils / run_demo only)
    # ─────────────────────────────────────────────
    ALS_FACTORS = int(os.getenv("ALS_FACTORS", 5))
    ALS_ITERATIONS = int(os.getenv("ALS_ITERATIONS", 10))
    ALS_REGULARIZATION = float(os.getenv("ALS_REGULARIZATION", 0.1))
    ALS_RANDOM_STATE = int(os.getenv("ALS_RANDOM_STATE", 42))

    # "true" → per-row masked solve, "false" → dense whole-matrix solve
    ALS_WEIGHTED = os.getenv("ALS_WEIGHTED", "true").lower() == "true"

    TOP_N = int(os.getenv("TOP_N", 3))

    # ─────────────────────────────────────────────
    # Paths
    # ─────────────────────────────────────────────
    DATA_DIR = os.getenv("DATA_DIR", "data")
    ARTIFACT_DIR = os.getenv("ARTIFACT_DIR", "artifacts")

# IMPORTANT: this is what model_utils and run_demo import
settings = Settings()
