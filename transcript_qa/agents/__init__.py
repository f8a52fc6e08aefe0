# =============================================================================
# Agents Package — Query Resolution Pipeline
# =============================================================================
#   - classifier.py: ordered rule table, question → QueryIntent
#   - resolver.py: internal lookups per intent (channels, titles, recency,
#     semantic search), never raises
#   - cascade.py: sequential external providers, first success wins
#   - coordinator.py: LangGraph state machine tying the stages together
#   - recorder.py: appends each exchange to conversation history
#   - answers.py / confidence.py: shared value types and routing scores
# =============================================================================
