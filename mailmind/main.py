"""
MailMind - Command-Line Entry Point
===================================

Runs the agent from a terminal, either once or as a chat session:

    python -m mailmind.main "What time is it?"
    python -m mailmind.main --trace        # interactive, prints each step

Or after installing:
    mailmind

Press Ctrl+C while the agent is working to cancel the current request.
Model errors are reported as system errors; the failed turn is recorded as
failed rather than answered.
"""

import argparse
import asyncio
import signal
import sys

from mailmind.agent import AgentLoop, AgentResult, CancellationToken, ModelGateway
from mailmind.agent.trace import StepRecord
from mailmind.errors import AgentCancelled, AgentError
from mailmind.memory import SessionHistory
from mailmind.tools import ToolRegistry
from mailmind.tools.builtin import register_builtin_tools
from mailmind.utils.config import get_config
from mailmind.utils.logger import Logger

main_logger = Logger("Main")

SESSION_ID = "cli"


async def _print_step(step: StepRecord) -> None:
    print(f"  · {step.kind}: {step.to_dict()}")


def build_agent(show_trace: bool = False) -> tuple[AgentLoop, ModelGateway]:
    """
    Create the gateway, tool registry and agent loop from configuration.
    """
    config = get_config()
    gateway = ModelGateway(config.llm)
    registry = register_builtin_tools(ToolRegistry())

    loop = AgentLoop.from_config(
        config,
        gateway,
        registry,
        on_step=_print_step if show_trace else None,
    )
    main_logger.info(
        "Agent ready",
        {
            "high": config.llm.high.model,
            "mid": config.llm.mid.model,
            "low": config.llm.low.model,
            "tools": registry.list_names(),
        },
    )
    return loop, gateway


async def ask(
    loop: AgentLoop,
    sessions: SessionHistory,
    question: str
) -> AgentResult | None:
    """
    Run one request with Ctrl+C wired to cancellation.

    Returns:
        The result, or None if the request failed or was cancelled
    """
    sessions.add_message(SESSION_ID, "user", question)

    token = CancellationToken()
    event_loop = asyncio.get_running_loop()
    try:
        event_loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        pass  # Windows event loops do not support signal handlers

    try:
        result = await loop.run(sessions.get_recent(SESSION_ID), cancel=token)
    except AgentCancelled as e:
        sessions.record_failure(SESSION_ID, e)
        print(f"[system] Cancelled after {len(e.trace)} step(s).")
        return None
    except AgentError as e:
        sessions.record_failure(SESSION_ID, e)
        print(f"[system] Error: {e} ({len(e.trace)} step(s) recorded)")
        return None
    finally:
        try:
            event_loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass

    sessions.add_message(
        SESSION_ID, "assistant", result.final_answer, metadata=result.to_metadata()
    )
    print(result.final_answer)
    return result


async def main(argv: list[str] | None = None) -> int:
    """
    Main async entry point.

    Returns:
        Process exit code
    """
    parser = argparse.ArgumentParser(prog="mailmind", description="Multi-model email agent")
    parser.add_argument("question", nargs="?", help="Ask once and exit")
    parser.add_argument("--trace", action="store_true", help="Print each agent step")
    args = parser.parse_args(argv)

    loop, gateway = build_agent(show_trace=args.trace)
    sessions = SessionHistory()

    try:
        if args.question:
            result = await ask(loop, sessions, args.question)
            return 0 if result is not None else 1

        print("MailMind is ready. Type 'exit' to quit.")
        while True:
            try:
                question = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            question = question.strip()
            if question.lower() in {"exit", "quit"}:
                break
            if question:
                await ask(loop, sessions, question)
        return 0
    finally:
        await gateway.aclose()


def run() -> None:
    """
    Synchronous entry point.

    This is called when running with the `mailmind` command.
    """
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
