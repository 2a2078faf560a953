"""
Agent System
============

The agent answers a user message by planning, reasoning step by step,
calling tools and finally answering, using three model tiers:

- high: planning, plan review, budget-exhausted summary
- mid: step-wise reasoning, final answer, memory compression
- low: strict tool-call extraction

This module provides:
- AgentLoop / AgentResult: the orchestration loop and its result
- ModelGateway / Tier: model access
- CancellationToken: external stop signal
"""

from mailmind.agent.cancellation import CancellationToken
from mailmind.agent.core import AgentLoop, AgentResult
from mailmind.agent.gateway import ModelGateway, Tier

__all__ = ["AgentLoop", "AgentResult", "CancellationToken", "ModelGateway", "Tier"]
