"""
MailMind - Multi-Model Email Agent
==================================

An email assistant agent that coordinates three language-model tiers
around a tool-execution boundary:

- Planning and plan review with a high-capability model
- Step-wise reasoning and answer synthesis with a mid-tier model
- Strict tool-call extraction with a low-cost model
- Automatic compression of working memory when context grows too large
"""

__version__ = "1.0.0"
