"""Prompt and UI utilities."""

from onion_chat.core.utils.prompt.chat_ui import ChatUI
from onion_chat.core.utils.prompt.prompt import PromptHandler, console

__all__ = ["ChatUI", "console", "PromptHandler"]
