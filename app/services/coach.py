import logging

import anthropic

from app.core.settings import settings

logger = logging.getLogger(__name__)


class CoachError(RuntimeError):
    pass


class AnthropicCoach:
    """Sends a single-turn prompt to Claude and returns the reply text."""

    def __init__(
        self,
        api_key: str | None,
        model: str,
        max_tokens: int = 500,
        client: anthropic.Anthropic | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self._client = client

    @property
    def client(self) -> anthropic.Anthropic:
        if self._client is None:
            if not self.api_key:
                raise CoachError("Missing ANTHROPIC_API_KEY environment variable")
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def complete(self, prompt: str) -> str:
        logger.info("Calling coach model %s (prompt length %d)", self.model, len(prompt))
        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIStatusError as exc:
            logger.error("Coach API error %s: %s", exc.status_code, exc.message)
            raise CoachError(f"Coach API error: {exc.status_code}") from exc
        except anthropic.APIError as exc:
            logger.error("Coach API request failed: %s", exc)
            raise CoachError(f"Coach API error: {exc}") from exc

        texts = [block.text for block in message.content if getattr(block, "type", None) == "text"]
        if not texts:
            raise CoachError("Coach API returned no text content")
        return texts[0]


def build_coach() -> AnthropicCoach:
    return AnthropicCoach(
        api_key=settings.ANTHROPIC_API_KEY,
        model=settings.INSIGHTS_MODEL,
        max_tokens=settings.INSIGHTS_MAX_TOKENS,
    )
