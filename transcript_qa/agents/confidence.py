# =============================================================================
# Confidence Constants
# =============================================================================
#
# Heuristic scores attached to answers, and the thresholds the coordinator
# routes on. They carry no probabilistic meaning; only their ordering
# matters:
#
#   TITLE_HIT (0.98) > ACCEPT_INTERNAL (0.95) = CHANNEL_LIST
#     = CHANNEL_EXISTS > CHANNEL_ABSENT (0.9) > RECENT_HIT (0.85)
#     > SEMANTIC_CAP (0.8) > SEMANTIC_DEFAULT (0.75) > LOW_TRUST (0.5)
#     > RECENT_MISS (0.4) > TITLE_MISS (0.3) > FALLBACK_MIN (0.15)
#     > NOT_FOUND (0.1) > 0
#
# External provider confidence (0.75 by default) is configured in
# config.py (web_answer_confidence / knowledge_only_confidence).
# =============================================================================

# Coordinator thresholds
ACCEPT_INTERNAL = 0.95   # internal answer returned without consulting the web
FALLBACK_MIN = 0.15      # internal answer kept when the cascade is exhausted
LOW_TRUST = 0.5          # semantic answers below this still trigger the cascade

# Structured lookups
CHANNEL_LIST = 0.95
TITLE_HIT = 0.98
TITLE_MISS = 0.3
CHANNEL_EXISTS = 0.95
CHANNEL_ABSENT = 0.9
RECENT_HIT = 0.85
RECENT_MISS = 0.4

# Semantic search
SEMANTIC_CAP = 0.8
SEMANTIC_DEFAULT = 0.75  # per-match score when the store returns no similarity

# Empty results / missing quoted name
NOT_FOUND = 0.1
