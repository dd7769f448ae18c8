"""Conversational AI client.

Generates reply text with Google Gemini. The client only ever supplies
prose: every failure is raised as AIClientError so callers can fall back
to their local templates.
"""

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions

from dispatch_advisor.domain.conversation import ConversationTurn

logger = structlog.get_logger()


class AIClientError(Exception):
    """Raised when a reply cannot be generated."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class GeminiConversationClient:
    """Gemini-backed reply generator.

    Example usage:
        client = GeminiConversationClient(api_key="YOUR_GEMINI_API_KEY")
        text = await client.generate_reply(
            system_prompt="You are a delivery pricing advisor.",
            user_message="What discounts do I get for 3 deliveries?",
        )
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-1.5-pro",
        max_output_tokens: int = 1000,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Gemini API key; the client is unavailable when empty.
            model_name: Gemini model name.
            max_output_tokens: Maximum reply length in tokens.
            timeout: Request timeout in seconds.
        """
        self.api_key = api_key
        self.model_name = model_name
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout

        if api_key:
            genai.configure(api_key=api_key)

    @property
    def is_available(self) -> bool:
        """Whether credentials are configured."""
        return bool(self.api_key)

    async def generate_reply(
        self,
        system_prompt: str,
        user_message: str,
        history: list[ConversationTurn] | None = None,
    ) -> str:
        """Generate a reply to the user's message.

        Args:
            system_prompt: Instructions and current conversation state.
            user_message: Latest user message.
            history: Earlier turns, oldest first.

        Returns:
            Reply text.

        Raises:
            AIClientError: On missing credentials, blocked or empty
                responses, and any API or transport failure.
        """
        if not self.is_available:
            raise AIClientError("Gemini API key is not configured")

        try:
            model = genai.GenerativeModel(
                model_name=self.model_name,
                system_instruction=system_prompt,
                generation_config=genai.GenerationConfig(max_output_tokens=self.max_output_tokens),
            )
            chat = model.start_chat(
                history=[
                    {
                        "role": "model" if turn.role == "assistant" else "user",
                        "parts": [turn.content],
                    }
                    for turn in history or []
                ]
            )
            response = await chat.send_message_async(
                user_message,
                request_options={"timeout": self.timeout},
            )
            text = response.text
        except (
            google_exceptions.GoogleAPIError,
            genai.types.BlockedPromptException,
            genai.types.StopCandidateException,
            ValueError,
        ) as e:
            logger.warning("AI reply generation failed", model=self.model_name, error=str(e))
            raise AIClientError(f"Reply generation failed: {e}") from e
        except Exception as e:
            # Transport and auth errors surface outside the SDK's own hierarchy
            logger.warning(
                "AI reply generation failed unexpectedly",
                model=self.model_name,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise AIClientError(f"Unexpected AI error: {e}") from e

        if not text or not text.strip():
            raise AIClientError("AI returned an empty reply")

        return text.strip()
