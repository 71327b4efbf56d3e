"""
Retrieval-augmented prompt construction.
"""

from typing import List

from .types import RetrievalResult

AUGMENTED_PROMPT_TEMPLATE = (
    "Using the following context, answer the user's question.\n\n"
    "---\n\n"
    "Context: \"{context}\"\n\n"
    "---\n\n"
    "Question: \"{question}\""
)

CONTEXT_SEPARATOR = "\n\n"


def build_prompt(original_question: str, retrieval: RetrievalResult) -> str:
    """
    Build the prompt sent to the chat model.

    The question is returned unchanged when nothing cleared the relevance
    threshold. Otherwise the matched content and the question are placed in
    labelled Context and Question sections, both verbatim.
    """
    if retrieval is None or not retrieval.should_augment:
        return original_question

    return AUGMENTED_PROMPT_TEMPLATE.format(
        context=_context_text(retrieval),
        question=original_question,
    )


def _context_text(retrieval: RetrievalResult) -> str:
    # top-k > 1 joins the ranked contents; top-1 is just the best entry
    contents: List[str] = [scored.entry.content for scored in retrieval.ranked]
    if not contents:
        contents = [retrieval.entry.content]
    return CONTEXT_SEPARATOR.join(contents)
