"""
PromptQA command line.

Usage:
    promptqa compile instructions.txt -o login_test.json
    promptqa run login_test.json signup.txt --parallel --batch-size 2
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import List

from .config import EngineConfig
from .engine.browser import BrowserSessionFactory
from .instruction_compiler import InstructionCompiler
from .models import TestCase, TestReport
from .runner import TestRunner
from .storage import Storage


def load_test_case(path: str, compiler: InstructionCompiler) -> TestCase:
    """Load a test case from JSON, or compile it from an instruction file."""
    text = Path(path).read_text(encoding="utf-8")
    if path.endswith(".json"):
        return TestCase.from_wire(json.loads(text))
    test_case = compiler.compile_test_case(text)
    if test_case.name == "Compiled Test":
        test_case = test_case.model_copy(update={"name": Path(path).stem})
    return test_case


def cmd_compile(args) -> int:
    compiler = InstructionCompiler()
    text = sys.stdin.read() if args.input == "-" else Path(args.input).read_text(encoding="utf-8")
    result = compiler.compile_detailed(text)
    test_case = compiler.test_case_from_result(result, text, test_id=args.id)

    for omission in result.omissions:
        print(f"  [SKIP] line {omission.line_number}: {omission.text} ({omission.reason})", file=sys.stderr)

    output = json.dumps(test_case.to_wire(), indent=2)
    if args.output:
        Path(args.output).write_text(output + "\n", encoding="utf-8")
        print(f"Compiled {len(test_case.actions)} actions to {args.output}")
    else:
        print(output)
    return 0


def print_report(report: TestReport):
    for result in report.results:
        print(f"\n{result.test_case_name}: {result.status.upper()} ({result.duration:.2f}s)")
        for step in result.steps:
            marker = "OK" if step.passed else "FAIL"
            print(f"  [{marker}] {step.step_number}. {step.description}")
            if step.error:
                print(f"         {step.error.kind}: {step.error.message}")
    print(f"\n{'='*60}")
    print(f"Total: {report.total_tests}  Passed: {report.passed}  Failed: {report.failed}  "
          f"Duration: {report.duration:.2f}s")
    print(f"{'='*60}")


async def run_tests(test_cases: List[TestCase], config: EngineConfig, parallel: bool) -> TestReport:
    factory = BrowserSessionFactory(config)
    await factory.initialize()
    try:
        runner = TestRunner(factory.session, config=config)
        return await runner.run(test_cases, parallel=parallel)
    finally:
        await factory.cleanup()


def cmd_run(args) -> int:
    config = EngineConfig.from_env()
    if args.headed:
        config.headless = False
    if args.browser:
        config.browser_type = args.browser
    if args.batch_size:
        config.batch_size = args.batch_size
    if args.concurrency:
        config.concurrency = args.concurrency

    compiler = InstructionCompiler()
    test_cases = [load_test_case(path, compiler) for path in args.files]

    report = asyncio.run(run_tests(test_cases, config, args.parallel))
    print_report(report)

    storage = Storage(args.report_dir or config.data_dir)
    print(f"Report saved to {storage.save_report(report)}")
    return 1 if report.failed else 0


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="promptqa",
        description="Compile plain-language browser tests and run them with Playwright"
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("PROMPTQA_LOG_LEVEL", "WARNING"),
        help="Logging level (default: PROMPTQA_LOG_LEVEL or WARNING)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    compile_parser = subparsers.add_parser("compile", help="Compile instructions into a test case")
    compile_parser.add_argument("input", help="Instruction file, or - for stdin")
    compile_parser.add_argument("--output", "-o", help="Write the test case JSON here instead of stdout")
    compile_parser.add_argument("--id", help="Test case ID (default: generated)")
    compile_parser.set_defaults(func=cmd_compile)

    run_parser = subparsers.add_parser("run", help="Run test cases in a browser")
    run_parser.add_argument("files", nargs="+", help="Test case JSON or instruction files")
    run_parser.add_argument("--headed", action="store_true", help="Show the browser window")
    run_parser.add_argument("--browser", choices=["chromium", "firefox", "webkit"])
    run_parser.add_argument("--parallel", action="store_true", help="Run batches concurrently")
    run_parser.add_argument("--batch-size", type=int, help="Test cases per batch in parallel mode")
    run_parser.add_argument("--concurrency", type=int, help="Maximum concurrent batches")
    run_parser.add_argument("--report-dir", help="Data directory for the JSON report")
    run_parser.set_defaults(func=cmd_run)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        sys.exit(args.func(args))
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
