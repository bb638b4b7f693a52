from typing import Iterator, Optional

from flask import current_app
from openai import OpenAI, OpenAIError


SUGGESTION_PROMPT = (
    "Create a list of three open-ended and engaging questions formatted as a single string. "
    "Each question should be separated by '||'. These questions are for an anonymous social "
    "messaging platform and should be suitable for a diverse audience. Avoid personal or "
    "sensitive topics, focusing instead on universal themes that encourage friendly interaction. "
    "For example, your output should be structured like this: "
    "'What's a hobby you've recently started?||If you could have dinner with any historical "
    "figure, who would it be?||What's a simple thing that makes you happy?'. "
    "Ensure the questions are intriguing, foster curiosity, and contribute to a positive and "
    "welcoming conversational environment."
)


class CompletionError(Exception):
    """The completion service could not produce text."""


class CompletionClient:
    """Streaming text completion backed by the OpenAI chat API."""

    def __init__(self, api_key: Optional[str], model: str = 'gpt-4o-mini', max_tokens: int = 400):
        self.model = model
        self.max_tokens = max_tokens
        self._client = OpenAI(api_key=api_key) if api_key else None

    def stream(self, prompt: str) -> Iterator[str]:
        """
        Open a streaming completion for ``prompt``.

        The request is sent before this returns, so connection and API errors
        surface here rather than on first iteration.
        """
        if self._client is None:
            raise CompletionError("Message suggestions are not configured")
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
                stream=True,
            )
        except OpenAIError as e:
            raise CompletionError(str(e)) from e
        return self._iter_text(response)

    @staticmethod
    def _iter_text(response) -> Iterator[str]:
        try:
            for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except OpenAIError as e:
            raise CompletionError(str(e)) from e


def init_completion(app):
    app.extensions['completion'] = CompletionClient(
        api_key=app.config.get('OPENAI_API_KEY'),
        model=app.config.get('OPENAI_MODEL', 'gpt-4o-mini'),
    )


def get_completion_client():
    return current_app.extensions['completion']
