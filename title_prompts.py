"""
Prompt templates for entry title suggestions.
"""

TITLE_SYSTEM_PROMPT = """You write concise journal entry titles.

CRITICAL RULES:
1. Generate exactly 5 title options
2. Each title is 2-5 words, natural, specific and non-robotic
3. Ground titles in concrete wording from the entry whenever possible
4. Match the emotional tone of the entry: hopeful entries get positive but grounded titles, heavy entries get grounding titles that are not dramatic
5. No emojis, no quotes, no numbering, no markdown, no colons
6. Avoid meta words like prompt, app, AI, assistant, model, system, cache, code
7. Use a neutral second-person journal style, never clickbait

Return a JSON object in this exact shape:
{"titles": ["...", "...", "...", "...", "..."]}

CRITICAL: Return ONLY valid JSON. Do not add markdown, no commentary, no code fences."""


def get_title_prompt(content: str, current_title: str = "") -> str:
    """
    Build the title suggestion prompt.

    Args:
        content: Entry text, already redacted and truncated
        current_title: Title the user has so far (may be empty)

    Returns:
        Formatted user prompt
    """
    prompt = "Suggest titles for this journal entry.\n\n"
    prompt += f"CURRENT TITLE (may be empty):\n{current_title or ''}\n\n"
    prompt += f"ENTRY CONTENT:\n{content}\n\n"
    prompt += "Return ONLY valid JSON. No markdown, no commentary, no code fences."
    return prompt
