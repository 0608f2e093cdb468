"""Example: stream a Gemini answer to the terminal.

Usage:
    GOOGLE_API_KEY=... python main.py "Explain how AI works"
"""

import argparse
import asyncio
import logging
import sys

from gemini_query import GeminiError, GenerativeModel, Request, TransportError


async def run(prompt: str, model_name: str, system: str | None) -> int:
    request = Request.from_prompt(prompt, system_instruction=system)
    try:
        async with GenerativeModel(model_name) as model:
            async with await model.stream_generate_content(request) as stream:
                async for item in stream:
                    if item.ok:
                        print(item.value.text, end="", flush=True)
                        continue
                    print(f"\n[error] {item.error}", file=sys.stderr)
                    if isinstance(item.error, TransportError):
                        return 1
    except GeminiError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Stream a response from Gemini")
    parser.add_argument("prompt", help="Prompt to send")
    parser.add_argument("--model", default="gemini-1.5-flash", help="Model name")
    parser.add_argument("--system", default=None, help="System instruction")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    sys.exit(asyncio.run(run(args.prompt, args.model, args.system)))


if __name__ == "__main__":
    main()
