"""
Model Gateway
=============

One entry point for every model call the agent makes:

    text = await gateway.call(Tier.MID, messages)

Three tiers map to three configured models:

    HIGH  planning, plan review, budget-exhausted summary
    MID   step-wise reasoning, final answer, memory compression
    LOW   strict tool-call extraction (colder temperature by default)

The gateway does no retrying and no caching. A failed call raises
UpstreamError and the caller decides what happens next.
"""

from enum import Enum
from typing import Iterable, Protocol, Sequence

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from mailmind.errors import ConfigurationError, UpstreamError
from mailmind.prompts import LANGUAGE_SENTINEL
from mailmind.memory.working import ConversationTurn
from mailmind.utils.config import LLMConfig, ModelTierConfig
from mailmind.utils.logger import Logger

logger = Logger("Gateway")

CHAT_COMPLETIONS_SUFFIX = "/chat/completions"

# Reasoning model families that only accept the default temperature
FIXED_TEMPERATURE_PREFIXES = ("o1", "o3")

LANGUAGE_ALIASES = {"中文": "Simplified Chinese"}

# Used for the low tier when it has no temperature of its own
DEFAULT_LOW_TEMPERATURE = 0.3


class Tier(str, Enum):
    HIGH = "high"
    MID = "mid"
    LOW = "low"


class ModelCaller(Protocol):
    """What the agent needs from a gateway. Tests inject fakes of this."""

    async def call(self, tier: Tier, messages: Sequence[ConversationTurn]) -> str: ...


def language_directive(language: str) -> str:
    language = LANGUAGE_ALIASES.get(language, language)
    return f"\n\n{LANGUAGE_SENTINEL} {language}."


def inject_language_directive(
    messages: Iterable[ConversationTurn],
    language: str
) -> list[ConversationTurn]:
    """
    Append the output-language directive to the first system message.

    Returns a new list; the input turns are not modified. A system message
    that already carries the directive is left alone, so applying this
    twice yields exactly one directive. Lists without a system message are
    returned unchanged.
    """
    result = list(messages)
    for index, turn in enumerate(result):
        if turn.role != "system":
            continue
        if LANGUAGE_SENTINEL not in turn.content:
            result[index] = ConversationTurn(
                role="system",
                content=turn.content + language_directive(language),
            )
        break
    return result


def normalize_base_url(api_url: str) -> str:
    """
    Turn a configured API URL into the base URL the SDK expects.

    Both "https://host/v1" and "https://host/v1/chat/completions" are
    accepted; requests always go to <base>/chat/completions.
    """
    url = api_url.strip().rstrip("/")
    if url.endswith(CHAT_COMPLETIONS_SUFFIX):
        url = url[: -len(CHAT_COMPLETIONS_SUFFIX)]
    return url


class ModelGateway:
    """
    Chat-completion client for the three model tiers.

    The gateway is built from a configuration snapshot and never reads
    global settings, so a settings reload only affects gateways created
    afterwards.

    Example:
        gateway = ModelGateway(get_config().llm)
        plan = await gateway.call(Tier.HIGH, [
            ConversationTurn("system", "You are a planner."),
            ConversationTurn("user", "Find my unread invoices."),
        ])
    """

    def __init__(
        self,
        config: LLMConfig,
        http_client: httpx.AsyncClient | None = None
    ):
        """
        Initialize the gateway.

        Args:
            config: LLM configuration snapshot
            http_client: Optional httpx client (tests pass one bound to a mock transport)
        """
        self.config = config
        self._http_client = http_client
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if not self.config.api_key:
            raise ConfigurationError(
                "No API key configured. Set MAILMIND_API_KEY in your environment or .env file."
            )
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=normalize_base_url(self.config.api_url),
                timeout=self.config.request_timeout,
                max_retries=0,
                http_client=self._http_client,
            )
        return self._client

    def tier_config(self, tier: Tier) -> ModelTierConfig:
        return {
            Tier.HIGH: self.config.high,
            Tier.MID: self.config.mid,
            Tier.LOW: self.config.low,
        }[tier]

    def resolve_temperature(self, tier: Tier) -> float:
        """
        Pick the sampling temperature for a tier.

        Order: tier override, then DEFAULT_LOW_TEMPERATURE for the low
        tier or the global temperature for the others. Reasoning model
        families are always sent 1.
        """
        tier = Tier(tier)
        tier_config = self.tier_config(tier)
        if tier_config.model.startswith(FIXED_TEMPERATURE_PREFIXES):
            return 1.0
        if tier_config.temperature is not None:
            return tier_config.temperature
        if tier is Tier.LOW:
            return DEFAULT_LOW_TEMPERATURE
        return self.config.temperature

    async def call(self, tier: Tier, messages: Sequence[ConversationTurn]) -> str:
        """
        Send one chat-completion request and return the assistant text.

        Raises:
            ConfigurationError: No API key is configured
            UpstreamError: Non-success status or transport failure
        """
        tier = Tier(tier)
        client = self._get_client()

        prepared = list(messages)
        if tier is not Tier.LOW:
            prepared = inject_language_directive(prepared, self.config.output_language)

        model = self.tier_config(tier).model
        temperature = self.resolve_temperature(tier)

        logger.debug(
            f"Calling {tier.value} tier",
            {"model": model, "messages": len(prepared), "temperature": temperature},
        )

        try:
            completion = await client.chat.completions.create(
                model=model,
                messages=[turn.to_dict() for turn in prepared],
                temperature=temperature,
            )
        except APIStatusError as e:
            body = e.response.text if e.response is not None else str(e)
            logger.error(f"{tier.value} tier returned HTTP {e.status_code}", e)
            raise UpstreamError(e.status_code, body) from e
        except APIConnectionError as e:
            logger.error(f"{tier.value} tier transport failure", e)
            raise UpstreamError(None, str(e)) from e

        if not completion.choices:
            raise UpstreamError(None, "Response contained no choices")

        content = completion.choices[0].message.content or ""
        logger.debug(f"{tier.value} tier replied", {"chars": len(content)})
        return content

    async def aclose(self) -> None:
        """Release the underlying HTTP client."""
        if self._client is not None:
            await self._client.close()
            self._client = None
