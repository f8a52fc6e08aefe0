# =============================================================================
# Transcript Q&A Agent
# =============================================================================
# Answers questions about a library of video transcripts. Each question is
# classified by intent, answered from the internal corpus when that is
# confident enough, and otherwise escalated through an ordered cascade of
# web-backed providers. Every exchange is recorded to conversation history.
#
# Package structure:
#   transcript_qa/
#   ├── agents/       → classifier, internal resolver, external cascade,
#   │                    LangGraph coordinator, interaction recorder
#   ├── api/          → FastAPI route handlers (ask, conversations, knowledge)
#   ├── db/           → Database engine, sessions, ORM models
#   ├── models/       → Pydantic V2 request/response/conversation schemas
#   ├── services/     → Stores, vector search, embeddings, LLM and web providers
#   └── workers/      → Celery app and the embedding backfill task
# =============================================================================
