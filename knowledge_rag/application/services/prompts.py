"""
Fixed instructions appended to every knowledge-grounded system prompt.
"""

GROUNDING_RULES = """Rules (Non-Overridable):
- Always follow the module's system instructions.
- Prefer grounded facts from the provided REFERENCE CONTEXT.
- If the context does not cover a claim, you may use general knowledge but say so explicitly.
- Match the module's target audience, tone, and format.
- Be concise, specific, and practically useful. Avoid boilerplate."""

KNOWLEDGE_INSTRUCTION = """You have access to a specialized knowledge base for this module.
When provided with reference context, integrate it naturally into your reasoning and outputs.
If the reference material does not contain relevant details for the current question,
you may use your general knowledge while being clear about what comes from the knowledge base vs. your general understanding."""


def build_system_prompt(base_prompt: str = "") -> str:
    """Join the module prompt with the grounding rules, skipping empty parts."""
    return "\n\n".join(part for part in (base_prompt.strip(), GROUNDING_RULES, KNOWLEDGE_INSTRUCTION) if part)
