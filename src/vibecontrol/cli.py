"""
VibeControl CLI.

    vibecontrol serve [--host H] [--port P]
    vibecontrol ask "what does this project do?" [--yes]

`ask` runs one message through the agent in-process. When the model
requests a command, the approval prompt happens right here in the
terminal, since pending approvals only live inside this process.
"""

import argparse
import asyncio
import logging
import sys
from typing import Any

from vibecontrol.agent import Runtime
from vibecontrol.errors import ConfigurationError, ExecutionFailure, ProviderError, VibeControlError

logger = logging.getLogger(__name__)


async def _confirm(prompt: str) -> bool:
    try:
        answer = await asyncio.to_thread(input, prompt)
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


async def _ask(runtime: Runtime, message: str, auto_approve: bool) -> int:
    response = await runtime.agent.respond(message)
    print(response.content)
    print(f"\n[{response.provider}]")

    approvals: list[dict[str, Any]] = [
        c["props"] for c in response.components if c.get("type") == "approval_card"
    ]
    for card in approvals:
        print(f"\nApproval requested: {card['command']}")
        if card.get("reason"):
            print(f"Reason: {card['reason']}")
        if not (auto_approve or await _confirm("Run this command? [y/N] ")):
            print("Skipped.")
            continue

        grant = runtime.approvals.grant(card["request_id"])
        try:
            output = await runtime.executor.run(
                card["command"], grant["approval_token"], card.get("cwd")
            )
        except ExecutionFailure as e:
            print(e.output, end="")
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(output, end="")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="vibecontrol", description="Workspace agent with approval-gated commands")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    ask = sub.add_parser("ask", help="Ask one question about the workspace")
    ask.add_argument("message")
    ask.add_argument("--yes", action="store_true", help="Approve requested commands without prompting")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        from vibecontrol.api.server import run_server
        run_server(host=args.host, port=args.port)
        return 0

    runtime = Runtime.create()
    try:
        return asyncio.run(_ask(runtime, args.message, args.yes))
    except (ConfigurationError, ProviderError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except VibeControlError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
