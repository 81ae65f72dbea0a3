# fragboard/thresholds.py

"""Named constants shared by the calculator, classifier and balancer."""

# Ranking
UNKNOWN_NICK = "Unknown"
DEFAULT_SORT_KEY = "kd"
DEFAULT_SORT_DIR = "desc"

# Rows below this match count get no score/tier and stay off the tier list
MIN_TIER_MATCHES = 3

# Composite score: each rate is capped, scaled to [0, 1], then weighted
SCORE_KD_CAP = 2.5
SCORE_KPM_CAP = 30.0
SCORE_APM_CAP = 10.0

SCORE_KD_WEIGHT = 400
SCORE_KPM_WEIGHT = 250
SCORE_APM_WEIGHT = 150
SCORE_MATCHES_WEIGHT = 100

# (cutoff, min_kd, label, indicator), ascending by cutoff.
# cutoff is the highest score the tier holds; the last row catches the rest.
TIER_TABLE = (
    (150.0, 0.0, "Silver I", "silver"),
    (250.0, 0.0, "Silver Elite", "silver"),
    (350.0, 0.6, "Gold Nova I", "gold"),
    (450.0, 0.8, "Gold Nova Master", "gold"),
    (550.0, 0.9, "Master Guardian", "blue"),
    (650.0, 1.0, "Distinguished Master Guardian", "blue"),
    (750.0, 1.2, "Legendary Eagle", "purple"),
    (850.0, 1.4, "Supreme Master First Class", "purple"),
    (float("inf"), 1.6, "Global Elite", "red"),
)

# Team balancing
DEFAULT_TEAM_SIZE = 5
MIN_TEAM_COUNT = 2
TEAM_NAMES = (
    "TEAM ALPHA",
    "TEAM OMEGA",
    "TEAM GAMMA",
    "TEAM DELTA",
    "TEAM EPSILON",
    "TEAM ZETA",
)
MAX_TEAM_COUNT = len(TEAM_NAMES)

# Display colour bands for K/D in the ranking table
KD_STRONG = 1.5
KD_EVEN = 1.0

# Narrative insight
INSIGHT_KD_DECIMALS = 2
INSIGHT_MAX_WORDS = 150
