# =============================================================================
# Services Package — Collaborators of the Pipeline
# =============================================================================
#   - knowledge_store.py: structured lookups over the `videos` table
#   - vectorstore.py: pluggable similarity search (pgvector, Chroma)
#   - embedder.py: OpenAI-compatible embeddings (batch + single query)
#   - conversation_store.py: locked append-only chat history
#   - llm.py: Anthropic / OpenAI-compatible chat completions
#   - web_search.py: Perplexity, Claude web_search and knowledge-only providers
# =============================================================================
