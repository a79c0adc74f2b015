"""Prompt templates."""
from datetime import datetime
from typing import Optional

TITLE_SEED_CHARS = 200


def build_system_prompt(now: Optional[datetime] = None) -> str:
    """System prompt prepended to every chat request."""
    now = now or datetime.now().astimezone()
    return f"""You are Uraan Chat, an AI assistant powered by Uraan Studios. Your role is to assist and engage in conversation while being helpful, respectful, and engaging.
- If you are specifically asked about the model you are using, you may mention it. If you are not asked specifically about the model you are using, you do not need to mention it.
- The current date and time including timezone is {now.strftime("%Y-%m-%d %H:%M:%S %Z")}.
- Always format responses using Markdown.
- Always use LaTeX for mathematical expressions:
    - Inline math must be wrapped in escaped parentheses: \\( content \\)
    - Do not use single dollar signs for inline math
    - Display math must be in double dollar signs: $$ content $$
"""


def build_title_prompt(content: str) -> str:
    """Ask for a short title from the first TITLE_SEED_CHARS of a message."""
    return (
        "Generate a concise, descriptive title (maximum 6 words) for this conversation "
        "based on the user's message. Return only the title, no quotes or extra text.\n\n"
        f'User message: "{content[:TITLE_SEED_CHARS]}"'
    )
