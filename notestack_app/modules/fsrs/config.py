# modules/fsrs/config.py

from fsrs_rs_python import DEFAULT_PARAMETERS

class FSRSDefaultConfig:
    FSRS_DESIRED_RETENTION = 0.90
    FSRS_MAX_INTERVAL = 730
    FSRS_GLOBAL_WEIGHTS = list(DEFAULT_PARAMETERS)
    FSRS_LEARNING_FLOOR_MINUTES = 1
