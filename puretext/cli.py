"""PureText command line.

Usage:
    python -m puretext.cli html answer.html --site kimi.moonshot.cn
    python -m puretext.cli text answer.html
    python -m puretext.cli docx answer.html --site chat.deepseek.com -o out/
    python -m puretext.cli pdf answer.html --site chat.deepseek.com -o out/
    python -m puretext.cli classify message.html
    cat answer.html | python -m puretext.cli text -
"""

import argparse
import asyncio
import os
import sys

from logger import logger
from .classifier import classify
from .dom import parse_fragment
from .errors import PureTextError
from .pipeline import OutputFormat, process


def read_markup(path: str) -> str:
    if path == '-':
        return sys.stdin.read()
    with open(path, encoding='utf-8') as f:
        return f.read()


async def cmd_convert(path: str, output: OutputFormat, site: str, target: str = None, title: str = None) -> int:
    """Run one file through the pipeline and write or print the result."""
    markup = read_markup(path)
    context = {'title': title} if title else None
    result = await process(markup, site, output, context)

    if not result.success:
        print(result.message, file=sys.stderr)
        return 1

    if output in (OutputFormat.DOCX, OutputFormat.PDF):
        filename = result.filename
        if target and os.path.isdir(target):
            filename = os.path.join(target, result.filename)
        elif target:
            filename = target
        with open(filename, 'wb') as f:
            f.write(result.content)
        print(f"{result.message}: {filename} (walker: {result.walker_name})")
        return 0

    if target:
        with open(target, 'w', encoding='utf-8') as f:
            f.write(result.content)
        print(f"{result.message}: {target} (walker: {result.walker_name})")
    else:
        print(result.content)
    return 0


def cmd_classify(path: str) -> int:
    """Print the human/AI decision for a container."""
    node = parse_fragment(read_markup(path))
    result = classify(node)

    print(f"\nType: {result.type.value}")
    print(f"Confidence: {result.confidence:.2f}")
    if result.indicators:
        print("Indicators:")
        for indicator in result.indicators:
            print(f"  - {indicator}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="PureText - clean copies and Word/PDF exports of AI chat answers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Output commands share the same arguments
    for fmt, help_text in (
        (OutputFormat.HTML, "Clipboard markup (Word/WPS ready)"),
        (OutputFormat.TEXT, "Plain text with no markdown syntax"),
        (OutputFormat.DOCX, "Word document"),
        (OutputFormat.PDF, "PDF document"),
    ):
        sub = subparsers.add_parser(fmt.value, help=help_text)
        sub.add_argument("file", help="Markup file, or - for stdin")
        sub.add_argument("--site", default="", help="Hostname the markup came from")
        sub.add_argument("-o", "--output", help="Output file (docx/pdf: file or directory)")
        sub.add_argument("--title", help="Document title (default: the user question)")

    # classify command
    classify_parser = subparsers.add_parser("classify", help="Human or AI message?")
    classify_parser.add_argument("file", help="Markup file, or - for stdin")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 2

    try:
        if args.command == "classify":
            return cmd_classify(args.file)
        return asyncio.run(cmd_convert(
            args.file, OutputFormat(args.command), args.site, args.output, args.title,
        ))
    except (OSError, PureTextError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
