"""
Constants shared by the attendance core
"""

SERVICE_NAME = "guard-attendance-backend"

# Face-match score at or above which a punch counts as face-verified (0-100 scale)
FACE_MATCH_THRESHOLD = 70

# Anomaly reason recorded when a guard checks into a unit other than the primary one
ANOMALY_NON_PRIMARY_UNIT = "non-primary unit"

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200
DEFAULT_HISTORY_LIMIT = 30
DEFAULT_PUNCH_HISTORY_DAYS = 30

# Active-guard quota granted by each subscription plan at signup
PLAN_GUARD_LIMITS = {
    "starter": 50,
    "professional": 200,
    "enterprise": 500,
}
DEFAULT_PLAN = "starter"
