"""
Checklist suggestion client using OpenAI GPT.

WHAT: Turns a ticket's title and description into candidate checklist items.

WHY: Managers breaking a design request into steps get a starting list
they can accept in bulk. The model's answer is advisory only; nothing is
stored until a manager accepts the items.

HOW: One chat completion per request, no retries. Upstream errors are
mapped to ChecklistSuggestionError carrying the upstream message.
"""

import json
import logging
import re
from typing import List, Optional

from openai import AsyncOpenAI, APIError, RateLimitError, APIConnectionError

from tracker.core.config import settings
from tracker.core.exceptions import ChecklistSuggestionError

logger = logging.getLogger(__name__)


MAX_ITEM_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 4000

CHECKLIST_SYSTEM_PROMPT = """You help design teams plan work.
Break the design ticket you are given into short, concrete checklist items
a designer can tick off one by one (for example "Export hero image at 2x").

Respond with a JSON object of the form {"items": ["...", "..."]}.
Each item is a single imperative sentence under 100 characters.
Do not number the items. Do not include anything besides the JSON object."""


class ChecklistSuggestionService:
    """
    Client for checklist suggestions.

    WHY: Accepts an injected client so tests can substitute a stub.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        limit: Optional[int] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize the suggestion client.

        Args:
            api_key: OpenAI API key (defaults to settings)
            model: Model name (defaults to settings)
            limit: Maximum items returned (defaults to settings)
            client: Pre-built client, mainly for tests
        """
        self._api_key = api_key or settings.OPENAI_API_KEY
        self._model = model or settings.OPENAI_MODEL
        self._limit = limit or settings.CHECKLIST_SUGGESTION_LIMIT

        if client is not None:
            self._client = client
        elif not self._api_key:
            logger.warning("OpenAI API key not configured - checklist suggestions disabled")
            self._client = None
        else:
            self._client = AsyncOpenAI(api_key=self._api_key)

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    def _parse_items(self, response_text: str) -> List[str]:
        """
        Extract checklist items from the model's answer.

        HOW: Prefers {"items": [...]}, then the first list found in a JSON
        object. Only text that is not JSON falls back to one item per line
        with bullets or numbering stripped.
        """
        text = (response_text or "").strip()

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            candidates = [re.sub(r"^\s*(?:[-*•]|\d+[.)])\s*", "", line) for line in text.splitlines()]
        else:
            if isinstance(parsed, dict):
                lists = [value for value in parsed.values() if isinstance(value, list)]
                parsed = parsed.get("items", lists[0] if lists else None)
            candidates = [str(item) for item in parsed] if isinstance(parsed, list) else []

        items: List[str] = []
        seen = set()
        for candidate in candidates:
            item = candidate.strip()[:MAX_ITEM_LENGTH]
            if item and item.lower() not in seen:
                seen.add(item.lower())
                items.append(item)
        return items[: self._limit]

    async def suggest(self, title: str, description: Optional[str] = None) -> List[str]:
        """
        Ask the model for checklist items for a ticket.

        Args:
            title: Ticket title
            description: Ticket description, if any

        Returns:
            Up to CHECKLIST_SUGGESTION_LIMIT distinct items

        Raises:
            ChecklistSuggestionError: If not configured or the upstream fails
        """
        if not self._client:
            raise ChecklistSuggestionError(
                message="Checklist suggestions are not configured - please set OPENAI_API_KEY"
            )

        user_message = f"Ticket title: {title}"
        if description:
            user_message += f"\n\nTicket description:\n{description[:MAX_DESCRIPTION_LENGTH]}"

        try:
            logger.info(f"Requesting checklist suggestions for: {title[:100]}")

            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": CHECKLIST_SYSTEM_PROMPT},
                    {"role": "user", "content": user_message},
                ],
                temperature=0.4,
                max_tokens=600,
            )

            response_text = response.choices[0].message.content
            logger.debug(f"Suggestion response: {(response_text or '')[:500]}")

            items = self._parse_items(response_text)
            logger.info(f"Received {len(items)} checklist suggestions")
            return items

        except RateLimitError as e:
            logger.error(f"OpenAI rate limit exceeded: {e}")
            raise ChecklistSuggestionError(
                message=f"Suggestion service rate limit exceeded: {e}"
            )
        except APIConnectionError as e:
            logger.error(f"OpenAI connection error: {e}")
            raise ChecklistSuggestionError(
                message=f"Failed to connect to suggestion service: {e}"
            )
        except APIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise ChecklistSuggestionError(
                message=f"Suggestion service error: {e}",
                error_code=getattr(e, "code", None),
            )


_suggestion_service: Optional[ChecklistSuggestionService] = None


def get_checklist_suggestion_service() -> ChecklistSuggestionService:
    """
    Get the shared suggestion client.

    WHY: Used as a FastAPI dependency so tests can override it.
    """
    global _suggestion_service
    if _suggestion_service is None:
        _suggestion_service = ChecklistSuggestionService()
    return _suggestion_service
