# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Token usage estimates using tiktoken.
"""

import logging
from typing import Dict, Iterable

import tiktoken

logger = logging.getLogger(__name__)


class TokenCounter:
    """Estimates prompt and completion sizes for usage reporting.

    Local text-completion models ship their own tokenizers, so these counts
    are estimates made with a fixed tiktoken encoding.
    """

    DEFAULT_ENCODING = "cl100k_base"

    def __init__(self, encoding_name: str = DEFAULT_ENCODING):
        self.encoding_name = encoding_name
        self._encoder = None

    @property
    def encoder(self):
        if self._encoder is None:
            try:
                self._encoder = tiktoken.get_encoding(self.encoding_name)
            except Exception as e:
                logger.warning(f"Failed to get encoding {self.encoding_name}: {e}. Falling back to {self.DEFAULT_ENCODING}")
                self._encoder = tiktoken.get_encoding(self.DEFAULT_ENCODING)
        return self._encoder

    def count_text_tokens(self, text: str) -> int:
        """Count tokens in plain text."""
        if not text:
            return 0
        return len(self.encoder.encode(text))

    def usage(self, prompts: Iterable[str], completion: str) -> Dict[str, int]:
        """Usage block in the OpenAI response shape. Every prompt sent during the turn counts as input."""
        prompt_tokens = sum(self.count_text_tokens(prompt) for prompt in prompts)
        completion_tokens = self.count_text_tokens(completion)
        return {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        }
