"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Model capability contract and the pending-table backed backend.
"""

from .backend import PendingModelBackend, ReplyFn
from .types import ModelBackend, ModelPrompt, ModelReply, ToolCall

__all__ = [
    "ModelBackend",
    "ModelPrompt",
    "ModelReply",
    "ToolCall",
    "PendingModelBackend",
    "ReplyFn",
]
