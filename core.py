from __future__ import annotations

from pathlib import Path

# Number of sets each exercise defaults to when the plan omits it
DEFAULT_SETS_PER_EXERCISE = 3

# Reps prefilled for an exercise without an explicit target
DEFAULT_TARGET_REPS = 12

# Rest after a finished exercise in free-form strength sessions (seconds)
DEFAULT_FREE_REST_DURATION = 60

# Rest between holds in corrective sessions (seconds)
DEFAULT_CORRECTIVE_REST_DURATION = 15

# Length of a corrective hold without an explicit duration (seconds)
DEFAULT_EXERCISE_DURATION = 60

# Step used by the "+30s" rest adjustment
REST_ADJUST_STEP = 30

# Calorie estimate inputs used when the backend does not report totals
DEFAULT_MET = 5.0
DEFAULT_BODY_WEIGHT_KG = 70
SECONDS_PER_REP = 3

# Fatigue accumulates per logged set and is capped
FATIGUE_PER_SET = 0.2
MAX_FATIGUE = 10.0

# Location of user settings and in-progress session snapshots
DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_RECOVERY_BASE = DATA_DIR / "session_recovery"
