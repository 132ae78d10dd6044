"""
CherryAi - Prompt Templates
============================
Centralised prompt management for the RAG engine.  All prompts live
here so they can be versioned and reviewed independently of
application logic.

Exports
-------
SYSTEM_PROMPT, HUMAN_PROMPT, CONTEXT_TEMPLATE, MEMORY_DOCUMENT_TEMPLATE,
MEMORY_SOURCE, NO_MEMORY_CONTEXT, NO_WEB_CONTEXT, NO_HISTORY_CONTEXT,
GENERIC_ERROR_MESSAGE.
"""

# ══════════════════════════════════════════════════════════════════════
#  CHAT PROMPT
# ══════════════════════════════════════════════════════════════════════
# ``{context}`` and ``{query}`` are ChatPromptTemplate variables.

SYSTEM_PROMPT: str = (
    "You are an AI assistant with access to a knowledge base. "
    "Answer the user's question based on the following context: {context}. "
    "Provide a detailed answer of up to 300 words. "
    "Consider the chat history for context. "
    "After your answer, provide a list of up to 5 relevant web links."
)

HUMAN_PROMPT: str = "{query}"


# ══════════════════════════════════════════════════════════════════════
#  CONTEXT BLOCK
# ══════════════════════════════════════════════════════════════════════

CONTEXT_TEMPLATE: str = """
══════════════════════════════════════════
KNOWLEDGE BASE (previous exchanges)
══════════════════════════════════════════
{memory}

══════════════════════════════════════════
WEB SEARCH RESULTS
══════════════════════════════════════════
{web}

══════════════════════════════════════════
CHAT HISTORY (most recent last)
══════════════════════════════════════════
{history}
"""

NO_MEMORY_CONTEXT: str = "(No related previous exchanges.)"
NO_WEB_CONTEXT: str = "(No web results.)"
NO_HISTORY_CONTEXT: str = "(No previous conversation.)"


# ══════════════════════════════════════════════════════════════════════
#  MEMORY WRITE-BACK
# ══════════════════════════════════════════════════════════════════════

MEMORY_DOCUMENT_TEMPLATE: str = "Query: {query}\nResponse: {answer}"

MEMORY_SOURCE: str = "chat history"


# ══════════════════════════════════════════════════════════════════════
#  ERROR RESPONSES
# ══════════════════════════════════════════════════════════════════════

GENERIC_ERROR_MESSAGE: str = "An error occurred while processing your request"
