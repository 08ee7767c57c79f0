"""Custom styling for questionary prompts.

This module provides a consistent style for the interactive context and
seed selection prompts.
"""

from questionary import Style

PROMPT_STYLE = Style(
    [
        ("qmark", "fg:#af87ff bold"),  # Purple question mark
        ("question", "bold"),
        ("answer", "fg:#ff87d7 bold"),  # Pink submitted answer
        ("pointer", "fg:#ff87d7 bold"),
        ("highlighted", "fg:#1c1c1c bg:#ff87d7 bold"),  # Dark text on pink background
        ("selected", "fg:#87d787"),
        ("instruction", "fg:#6c6c6c italic"),
        ("text", ""),
        ("disabled", "fg:#585858 italic"),
    ]
)

# Icon prefixes for prompts
POINTER = "❯ "
QMARK = "? "
