"""System prompt selection and chat message rendering.

Everything here is pure: no I/O, no retries. A failure is a configuration
error, never a runtime fault.
"""

from __future__ import annotations

from clio_rag.exceptions import ConfigurationError
from clio_rag.generation.prompt_templates import (
    DEFAULT_SYSTEM_PROMPTS,
    PROJECT_CONTEXT_BLOCK,
    SOURCE_HEADER,
    SOURCES_PROMPT,
)
from clio_rag.models.domain import GenerationRequest, RetrievedPassage


def build_system_prompt(
    language: str,
    use_custom: bool = False,
    custom_text: str | None = None,
    free_mode: bool = False,
) -> str:
    if free_mode:
        return ""
    if use_custom and custom_text and custom_text.strip():
        return custom_text
    try:
        return DEFAULT_SYSTEM_PROMPTS[language]
    except KeyError:
        raise ConfigurationError(
            f"No default system prompt for language {language!r}. "
            f"Choose one of: {', '.join(sorted(DEFAULT_SYSTEM_PROMPTS))}."
        ) from None


def format_sources_block(passages: list[RetrievedPassage] | tuple[RetrievedPassage, ...]) -> str:
    parts = []
    for i, p in enumerate(passages, 1):
        doc = p.document
        attribution = ""
        if doc and (doc.author or doc.year):
            attribution = f" ({', '.join(str(x) for x in (doc.author, doc.year) if x)})"
        header = SOURCE_HEADER.format(
            index=i,
            title=p.title,
            attribution=attribution,
            page=f", p. {p.page_number}" if p.page_number else "",
            related=" [related document]" if p.is_graph_expansion else "",
        )
        parts.append(f"{header}\n{p.content}")
    return "\n\n".join(parts)


def build_user_prompt(request: GenerationRequest) -> str:
    if not request.passages and not request.project_context:
        return request.query
    project_block = (
        PROJECT_CONTEXT_BLOCK.format(project_context=request.project_context) + "\n"
        if request.project_context
        else ""
    )
    if not request.passages:
        return f"{project_block}Question: {request.query}"
    return SOURCES_PROMPT.format(
        project_block=project_block,
        sources_block=format_sources_block(request.passages),
        query=request.query,
    )


def build_messages(request: GenerationRequest) -> list[dict[str, str]]:
    messages: list[dict[str, str]] = []
    if request.system_prompt:
        messages.append({"role": "system", "content": request.system_prompt})
    messages.append({"role": "user", "content": build_user_prompt(request)})
    return messages


def estimate_prompt_size(request: GenerationRequest) -> int:
    """Approximate prompt size in characters, as reported in explanations."""
    context_size = sum(len(p.content) for p in request.passages)
    return (
        len(request.query)
        + context_size
        + len(request.system_prompt)
        + len(request.project_context or "")
    )
