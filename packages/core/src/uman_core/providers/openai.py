from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from uman_core.providers.base import BaseSummarizer

# The Chat Completions API has no token-counting endpoint. English prose and
# diffs average close to four characters per token, which is accurate enough
# for a ceiling that sits in the hundreds of thousands.
_CHARS_PER_TOKEN = 4


class OpenAISummarizer(BaseSummarizer):
    MODEL = "gpt-4o"
    TEMPERATURE = 0.2

    def __init__(self, api_key: str):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. "
                "Install it with: pip install 'uman-changelog[openai]'"
            )
        self.client = _OpenAI(api_key=api_key)

    def _count_tokens(self, prompt: str) -> int:
        return -(-len(prompt) // _CHARS_PER_TOKEN)

    def _call_api(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.MODEL,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        return response.choices[0].message.content
