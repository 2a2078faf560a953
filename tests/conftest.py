import pytest

from mailmind.memory.working import ConversationTurn
from mailmind.utils.config import AgentConfig, LLMConfig, ModelTierConfig
from tests.fakes import FakeGateway, FakeToolInvoker


def make_llm_config(**overrides) -> LLMConfig:
    values = dict(
        api_key="test-key",
        api_url="http://llm.test/v1",
        high=ModelTierConfig(model="high-model", temperature=0.7),
        mid=ModelTierConfig(model="mid-model"),
        low=ModelTierConfig(model="low-model"),
        temperature=1.0,
        output_language="English",
        request_timeout=5.0,
    )
    values.update(overrides)
    return LLMConfig(**values)


def make_agent_config(**overrides) -> AgentConfig:
    return AgentConfig(**overrides)


@pytest.fixture
def user_history():
    return [ConversationTurn("user", "How many unread emails do I have?")]


@pytest.fixture
def fake_tools():
    return FakeToolInvoker()


@pytest.fixture
def fake_gateway():
    return FakeGateway()
