"""Intent oracle backed by OpenAI chat completions with a forced function call."""

import json
import logging

from openai import AsyncOpenAI

from receptionist.conversation.intent import ORACLE_LABELS, IntentOracle, OracleVerdict
from receptionist.prompts.system_prompts import CLASSIFY_INTENT_TOOL, INTENT_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class OpenAIIntentOracle(IntentOracle):
    """Asks the model to call ``classify_intent`` and validates its arguments."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini", temperature: float = 0.0) -> None:
        self._client = client
        self.model = model
        self.temperature = temperature

    async def classify(self, text: str) -> OracleVerdict:
        response = await self._client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            messages=[
                {"role": "system", "content": INTENT_SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
            tools=[CLASSIFY_INTENT_TOOL],
            tool_choice={"type": "function", "function": {"name": "classify_intent"}},
        )
        message = response.choices[0].message
        if not message.tool_calls:
            raise ValueError("Intent oracle returned no tool call")

        args = json.loads(message.tool_calls[0].function.arguments)
        label = args.get("intent")
        if label not in ORACLE_LABELS:
            raise ValueError(f"Intent oracle returned unknown label {label!r}")
        try:
            confidence = float(args.get("confidence"))
        except (TypeError, ValueError):
            raise ValueError(f"Intent oracle returned bad confidence {args.get('confidence')!r}") from None
        if not 0.0 <= confidence <= 1.0:
            raise ValueError(f"Intent oracle confidence out of range: {confidence}")

        logger.debug("Oracle verdict: %s (%.2f)", label, confidence)
        return OracleVerdict(label=label, confidence=confidence)
