"""Prompt templates and canned answers for the ask pipeline."""

from dataclasses import dataclass
from typing import Any


@dataclass
class PromptTemplate:
    """A template for generating prompts with variable substitution."""

    template: str

    def render(self, **kwargs: Any) -> str:
        """Render the template with the given variables.

        Raises:
            KeyError: If a required variable is missing.
        """
        return self.template.format(**kwargs)


# =============================================================================
# Canned Answers
# =============================================================================
# Returned without calling the model when retrieval produced nothing to
# answer from.

NO_MEMORIES_ANSWER = (
    "I couldn't find any relevant information in your memories to answer your question."
)
WEB_SEARCH_UNAVAILABLE_ANSWER = (
    "I couldn't search the internet. Please check if web search is configured."
)
NO_WEB_RESULTS_ANSWER = "I couldn't find any relevant web results for your question."
NO_CONTEXT_ANSWER = "I couldn't find any relevant information to answer your question."


# =============================================================================
# Direct Answer (llm mode)
# =============================================================================

DIRECT_ANSWER_TEMPLATE = PromptTemplate(
    """You are a helpful assistant. Please answer the following question directly and helpfully.

QUESTION: {question}

ANSWER:"""
)


# =============================================================================
# Personal Data Answer (memories mode)
# =============================================================================

MEMORIES_ANSWER_TEMPLATE = PromptTemplate(
    """You are a helpful assistant answering questions about a user's personal data (todos and memories).

Based on the following context from the user's data, answer their question concisely and helpfully.
If the context doesn't contain relevant information, say so clearly.

CONTEXT:
{context}

QUESTION: {question}

INSTRUCTIONS:
- Answer based ONLY on the provided context
- Be concise but complete
- If referencing specific items, mention them clearly
- If the answer isn't in the context, say "I don't have enough information to answer that"
- Don't make up information not present in the context

ANSWER:"""
)


# =============================================================================
# Web Answer (internet mode)
# =============================================================================

INTERNET_ANSWER_TEMPLATE = PromptTemplate(
    """You are a helpful assistant answering questions using information from web search results.

Based on the following web search results, answer the user's question comprehensively.
Synthesize information from multiple sources when relevant.

WEB SEARCH RESULTS:
{context}

QUESTION: {question}

INSTRUCTIONS:
- Synthesize information from the web results to provide a comprehensive answer
- When citing specific information, mention the source (e.g., "According to [source name]...")
- If the web results don't fully answer the question, say what you found and what's missing
- Be helpful and informative
- Format your response clearly with sections or bullet points if appropriate

ANSWER:"""
)


# =============================================================================
# Hybrid Mode
# =============================================================================
# Query generation asks for a bare JSON array; the answer template is told
# which kinds of sources actually made it into the context.

QUERY_GENERATION_WITH_NOTES_TEMPLATE = PromptTemplate(
    """Based on this question and the user's personal notes, generate 2-3 focused web search queries.

QUESTION: {question}

USER'S NOTES:
{notes}

Generate queries that would help validate or expand on specific points from their notes.
Return ONLY a JSON array of strings, no other text: ["query1", "query2"]"""
)

QUERY_GENERATION_TEMPLATE = PromptTemplate(
    """Convert this question into 2-3 focused web search queries.

QUESTION: {question}

Break it down into specific, searchable topics.
Return ONLY a JSON array of strings, no other text: ["query1", "query2"]"""
)

HYBRID_ANSWER_TEMPLATE = PromptTemplate(
    """You are a helpful assistant answering questions using {source_description}.

The context contains:
1. YOUR PERSONAL DATA: The user's own memories, notes, and todos
2. WEB RESEARCH: Targeted web searches generated based on the user's question and personal context

The web searches were specifically crafted to validate, expand on, or provide research relevant to the user's personal notes.

CONTEXT:
{context}

QUESTION: {question}

INSTRUCTIONS:
- Start by acknowledging what you found in their personal data (if any)
- Then provide relevant insights from web research that validate or expand on their ideas
- Make specific connections: "Your note about X aligns with research showing..." or "Regarding your plan for Y, studies suggest..."
- If personal data is relevant, prioritize it and use web findings as supporting evidence
- If their notes contain ideas or plans, help validate them with external research
- Be conversational, specific, and helpful
- Don't just summarize - synthesize the personal context with web research into actionable insights

ANSWER:"""
)


def get_query_generation_prompt(question: str, notes: str) -> str:
    """Prompt asking for focused web queries, grounded on notes when there are any."""
    if notes:
        return QUERY_GENERATION_WITH_NOTES_TEMPLATE.render(question=question, notes=notes)
    return QUERY_GENERATION_TEMPLATE.render(question=question)


def get_hybrid_answer_prompt(
    question: str, context: str, has_memories: bool, has_web: bool
) -> str:
    """Final hybrid prompt, describing the sources that were found."""
    if has_memories and has_web:
        source_description = "your personal memories/todos AND targeted web research"
    elif has_memories:
        source_description = "your personal memories/todos"
    else:
        source_description = "web search results"
    return HYBRID_ANSWER_TEMPLATE.render(
        source_description=source_description, context=context, question=question
    )
