"""Prompt text for knowledge-grounded replies."""

# Leading line of every RAG prompt; providers use it to skip dialogue parsing.
RAG_PROMPT_MARKER = "KNOWLEDGE-GROUNDED TASK:"

RAG_INSTRUCTIONS = (
    "You are a helpful customer-support assistant. Answer the customer's latest "
    "question in the language they used, using only the information in the CONTEXT "
    "section below.\n"
    "- Never contradict the supplied context.\n"
    "- Never invent facts, prices, deadlines or links that the context does not support; "
    "if the context does not cover the question, say that you do not know.\n"
    "- If the question is unclear, ask a short follow-up question before answering.\n"
    "- Read the conversation history carefully: the latest message may answer an earlier "
    "question or continue a previous topic.\n"
    "- Be polite and stay in your role. Use markdown when it helps readability."
)

CITE_SOURCES_INSTRUCTION = (
    "When you use a passage, cite it by its index in square brackets, e.g. [1]. "
    "Only cite URLs that appear in the context."
)

RAG_PROMPT_TEMPLATE = """{marker}

{instructions}

CONTEXT:
{context}

CONVERSATION:
{conversation}

CURRENT QUESTION: {question}

ANSWER:"""


def is_rag_prompt(text: str) -> bool:
    return text.lstrip().startswith(RAG_PROMPT_MARKER)
