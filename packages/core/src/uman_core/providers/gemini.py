from __future__ import annotations

from uman_core.providers.base import BaseSummarizer


class GeminiSummarizer(BaseSummarizer):
    MODEL = "gemini-2.5-flash"
    TEMPERATURE = 0.2

    def __init__(self, api_key: str):
        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "The 'google-generativeai' package is required for this provider. "
                "Install it with: pip install 'uman-changelog[gemini]'"
            )
        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(
            model_name=self.MODEL,
            generation_config=genai.GenerationConfig(
                temperature=self.TEMPERATURE,
                max_output_tokens=self.MAX_TOKENS,
            ),
        )

    def _count_tokens(self, prompt: str) -> int:
        return self.model.count_tokens(prompt).total_tokens

    def _call_api(self, prompt: str) -> str:
        response = self.model.generate_content(prompt)
        return response.text
