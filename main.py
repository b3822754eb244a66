"""
Main entry point for the DiffChecker command line tool.

This module handles:
- Command line argument parsing
- Logging configuration
- Settings loading
- Running a comparison or validation on a headless Qt application
- Reporting results and exit codes
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, List, Optional, TextIO

from PyQt6.QtCore import QCoreApplication

from diffchecker.core.models import (
    ComparisonOptions,
    ComparisonResult,
    DiffLine,
    DiffLineType,
    DiffType,
    FormatType,
    ValidationResult,
)
from diffchecker.core.validators import validate
from diffchecker.services.file_io import FileContent, FileIOService, LineEnding
from diffchecker.services.settings import LOG_LEVELS, EngineSettings, SettingsManager
from diffchecker.workers.compare_worker import ComparisonDispatcher, ComparisonObserver


# =============================================================================
# Constants
# =============================================================================

APP_NAME = "diffchecker"
APP_VERSION = "1.0.0"

EXIT_IDENTICAL = 0
EXIT_DIFFERENT = 1
EXIT_ERROR = 2


# =============================================================================
# Command Line Arguments
# =============================================================================

@dataclass
class CommandLineArgs:
    """Parsed command line arguments."""
    left_path: str
    right_path: str
    format_type: Optional[FormatType] = None
    validate_only: bool = False
    ignore_key_order: bool = False
    ignore_array_order: bool = False
    ignore_attribute_order: bool = False
    ignore_whitespace: bool = False
    ignore_case: bool = False
    show_lines: bool = False
    json_output: bool = False
    config_file: Optional[str] = None
    save_defaults: bool = False
    log_level: Optional[str] = None
    log_file: Optional[str] = None


# =============================================================================
# Logging Setup
# =============================================================================

class LogFormatter(logging.Formatter):
    """Custom log formatter with colors for console."""

    COLORS = {
        logging.INFO: '\033[32m',      # Green
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True, stream: Optional[TextIO] = None):
        super().__init__(
            fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        stream = stream or sys.stderr
        self.use_colors = use_colors and hasattr(stream, 'isatty') and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if self.use_colors:
            color = self.COLORS.get(record.levelno, '')
            return f"{color}{formatted}{self.RESET}"

        return formatted


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure application logging.

    Console output goes to stderr so that stdout carries only results.

    Args:
        level: Log level string
        log_file: Optional file path for logging

    Returns:
        Root logger instance
    """
    # Get numeric level
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    # Create root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove existing handlers
    root_logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(LogFormatter(use_colors=True, stream=sys.stderr))
    root_logger.addHandler(console_handler)

    # File handler
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(
            log_file,
            encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(LogFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    return root_logger


# =============================================================================
# Exception Handling
# =============================================================================

class ExceptionHandler:
    """Global handler that logs unhandled exceptions before exiting."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def handle_exception(
        self,
        exc_type: type,
        exc_value: BaseException,
        exc_tb
    ) -> None:
        """Handle an unhandled exception."""
        # Don't handle keyboard interrupt
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return

        self.logger.critical(
            "Unhandled exception",
            exc_info=(exc_type, exc_value, exc_tb)
        )
        self.logger.debug(''.join(traceback.format_exception(exc_type, exc_value, exc_tb)))


# =============================================================================
# Command Line Parsing
# =============================================================================

def parse_arguments(args: Optional[List[str]] = None) -> CommandLineArgs:
    """
    Parse command line arguments.

    Args:
        args: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Compare or validate JSON, XML and text documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s old.json new.json                     Structural JSON diff
  %(prog)s --ignore-key-order a.json b.json      Ignore object key order
  %(prog)s --format xml --lines a.cfg b.cfg      XML diff with aligned lines
  %(prog)s --validate a.xml b.xml                Only check well-formedness
  %(prog)s --json a.txt b.txt                    Full result as JSON

Exit status is 0 when the inputs are equivalent, 1 when they differ
and 2 when an input cannot be read or is not well-formed.
        """
    )

    # Positional arguments
    parser.add_argument('left', help='Left (original) file')
    parser.add_argument('right', help='Right (changed) file')

    parser.add_argument(
        '-f', '--format',
        choices=[f.value for f in FormatType],
        default=None,
        help='Content format (inferred from the left file extension by default)'
    )
    parser.add_argument(
        '--validate',
        action='store_true',
        help='Validate both inputs instead of comparing them'
    )

    # Comparison options
    options_group = parser.add_argument_group('comparison options')
    options_group.add_argument('--ignore-key-order', action='store_true', help='JSON: ignore object key order')
    options_group.add_argument('--ignore-array-order', action='store_true', help='JSON: compare arrays as multisets')
    options_group.add_argument('--ignore-attribute-order', action='store_true', help='XML: ignore attribute order')
    options_group.add_argument('-w', '--ignore-whitespace', action='store_true', help='Collapse whitespace runs')
    options_group.add_argument('-i', '--ignore-case', action='store_true', help='Case-insensitive comparison')

    # Output
    parser.add_argument(
        '-l', '--lines',
        action='store_true',
        help='Also print aligned lines for structural formats'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print the full result as JSON'
    )

    # Configuration
    parser.add_argument(
        '-c', '--config',
        help='Settings file path'
    )
    parser.add_argument(
        '--save-defaults',
        action='store_true',
        help='Store the given comparison options as defaults in the settings file'
    )

    # Logging
    parser.add_argument(
        '--log-level',
        choices=list(LOG_LEVELS),
        default=None,
        help='Log level (defaults to the configured level)'
    )
    parser.add_argument(
        '--log-file',
        help='Also write the log to this file'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {APP_VERSION}'
    )

    parsed = parser.parse_args(args)

    return CommandLineArgs(
        left_path=parsed.left,
        right_path=parsed.right,
        format_type=FormatType.from_string(parsed.format) if parsed.format else None,
        validate_only=parsed.validate,
        ignore_key_order=parsed.ignore_key_order,
        ignore_array_order=parsed.ignore_array_order,
        ignore_attribute_order=parsed.ignore_attribute_order,
        ignore_whitespace=parsed.ignore_whitespace,
        ignore_case=parsed.ignore_case,
        show_lines=parsed.lines,
        json_output=parsed.json,
        config_file=parsed.config,
        save_defaults=parsed.save_defaults,
        log_level=parsed.log_level,
        log_file=parsed.log_file,
    )


def build_options(args: CommandLineArgs, defaults: ComparisonOptions) -> ComparisonOptions:
    """Combine configured default options with command line flags."""
    return replace(
        defaults,
        ignore_key_order=defaults.ignore_key_order or args.ignore_key_order,
        ignore_array_order=defaults.ignore_array_order or args.ignore_array_order,
        ignore_attribute_order=defaults.ignore_attribute_order or args.ignore_attribute_order,
        ignore_whitespace=defaults.ignore_whitespace or args.ignore_whitespace,
        case_sensitive=defaults.case_sensitive and not args.ignore_case,
        include_line_diff=defaults.include_line_diff or args.show_lines,
    )


# =============================================================================
# Output
# =============================================================================

class ResultCollector(ComparisonObserver):
    """Keeps the terminal event of the comparison run by the CLI."""

    def __init__(self):
        self.result: Optional[ComparisonResult] = None
        self.error: Optional[str] = None

    def on_progress(self, request_id: int, fraction: float, message: str) -> None:
        logging.debug(f"ResultCollector - Request {request_id}: {fraction:.0%} {message}")

    def on_result(self, request_id: int, result: ComparisonResult) -> None:
        self.result = result

    def on_error(self, request_id: int, message: str) -> None:
        self.error = message


def _format_value(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)


_DIFF_MARKERS = {DiffType.ADDED: '+', DiffType.REMOVED: '-', DiffType.MODIFIED: '~'}
_LINE_MARKERS = {
    DiffLineType.UNCHANGED: ' ',
    DiffLineType.ADDED: '+',
    DiffLineType.REMOVED: '-',
    DiffLineType.MODIFIED: '~',
}


def _print_lines(title: str, lines: list[DiffLine], out: TextIO) -> None:
    print(f"--- {title}", file=out)
    for line in lines:
        print(f"{_LINE_MARKERS[line.type]} {line.line_number:5d} | {line.content}", file=out)


def print_result(result: ComparisonResult, show_lines: bool, out: Optional[TextIO] = None) -> None:
    """Print a human-readable report of a comparison result."""
    out = out or sys.stdout
    if result.errors is not None:
        for side, error in (('left', result.errors.left), ('right', result.errors.right)):
            if error is not None:
                print(f"{side}: {_format_error(error.to_dict())}", file=out)
        return

    print("Identical" if result.identical else f"Different ({result.summary})", file=out)

    for item in result.differences or []:
        marker = _DIFF_MARKERS[item.type]
        if item.type == DiffType.MODIFIED and item.has_old_value and item.has_new_value:
            detail = f": {_format_value(item.old_value)} -> {_format_value(item.new_value)}"
        elif item.has_new_value:
            detail = f": {_format_value(item.new_value)}"
        elif item.has_old_value:
            detail = f": {_format_value(item.old_value)}"
        else:
            detail = ""
        print(f"{marker} {item.path}{detail}", file=out)

    if result.left_lines is not None and (show_lines or result.differences is None):
        _print_lines("left", result.left_lines, out)
        _print_lines("right", result.right_lines or [], out)


def _format_error(error: dict) -> str:
    location = ""
    if 'line' in error:
        location = f" (line {error['line']}, column {error.get('column', '?')})"
    return f"{error['message']}{location}"


def print_validation(
    left: ValidationResult,
    right: ValidationResult,
    json_output: bool,
    out: Optional[TextIO] = None,
) -> None:
    """Print the validation outcome of both inputs."""
    out = out or sys.stdout
    if json_output:
        print(json.dumps({'left': left.to_dict(), 'right': right.to_dict()}, indent=2), file=out)
        return
    for side, validation in (('left', left), ('right', right)):
        status = "valid" if validation.valid else _format_error(validation.error.to_dict())
        print(f"{side}: {status}", file=out)


# =============================================================================
# Runner
# =============================================================================

def read_inputs(args: CommandLineArgs) -> tuple[Optional[FileContent], Optional[FileContent]]:
    """Read both input files, logging any failure."""
    file_io = FileIOService()
    contents = []
    for path in (args.left_path, args.right_path):
        read_result = file_io.read_file(path)
        if not read_result.success:
            logging.error(f"main - {read_result.error}")
            contents.append(None)
        else:
            logging.debug(f"main - Read {path} ({read_result.content.encoding})")
            contents.append(read_result.content)
    return contents[0], contents[1]


def describe_input(content: FileContent) -> dict[str, Any]:
    """Encoding metadata of one input, as reported by ``--json``."""
    return {
        'encoding': content.encoding,
        'lineEnding': content.line_ending.name,
        'bom': content.bom,
    }


def check_line_endings(left: FileContent, right: FileContent) -> bool:
    """Warn when the inputs use different line endings, which the comparison ignores."""
    endings = {left.line_ending, right.line_ending} - {LineEnding.NONE}
    if len(endings) > 1:
        logging.warning(
            f"main - Line endings differ (left {left.line_ending.name}, "
            f"right {right.line_ending.name}); they are not compared"
        )
        return False
    return True


def run(args: CommandLineArgs, settings: EngineSettings, out: Optional[TextIO] = None) -> int:
    """Run the requested validation or comparison and return the exit code."""
    out = out or sys.stdout
    left_content, right_content = read_inputs(args)
    if left_content is None or right_content is None:
        return EXIT_ERROR
    left, right = left_content.content, right_content.content

    format_type = args.format_type or FileIOService().detect_format(
        args.left_path, default=settings.default_format
    )
    logging.info(f"main - Comparing {args.left_path} and {args.right_path} as {format_type.value}")

    if args.validate_only:
        left_result = validate(left, format_type)
        right_result = validate(right, format_type)
        print_validation(left_result, right_result, args.json_output, out)
        return EXIT_IDENTICAL if left_result.valid and right_result.valid else EXIT_ERROR

    options = build_options(args, settings.default_options)
    check_line_endings(left_content, right_content)

    # Worker threads deliver their signals through this application's event queue
    app = QCoreApplication.instance() or QCoreApplication([APP_NAME])
    dispatcher = ComparisonDispatcher(settings)
    collector = ResultCollector()
    dispatcher.submit(left, right, format_type, options, observer=collector)
    dispatcher.wait_for_idle()
    logging.debug(f"main - Dispatcher idle ({app.applicationName()})")

    if collector.error is not None or collector.result is None:
        message = collector.error or "Comparison produced no result"
        if args.json_output:
            print(json.dumps({'error': message}, indent=2), file=out)
        else:
            print(f"error: {message}", file=out)
        return EXIT_ERROR

    result = collector.result
    if args.json_output:
        data = result.to_dict()
        data['inputs'] = {
            'left': describe_input(left_content),
            'right': describe_input(right_content),
        }
        print(json.dumps(data, indent=2, ensure_ascii=False), file=out)
    else:
        print_result(result, args.show_lines, out)

    if result.has_errors:
        return EXIT_ERROR
    return EXIT_IDENTICAL if result.identical else EXIT_DIFFERENT


def main(argv: Optional[List[str]] = None) -> int:
    """
    Command line entry point.

    Returns:
        Exit code (0 identical, 1 different, 2 error)
    """
    args = parse_arguments(argv)

    settings_manager = SettingsManager(Path(args.config_file) if args.config_file else None)
    settings = settings_manager.settings

    log_file = Path(args.log_file) if args.log_file else None
    logger = setup_logging(args.log_level or settings.log_level, log_file)
    logger.debug(f"Starting {APP_NAME} v{APP_VERSION}")

    exception_handler = ExceptionHandler(logger)
    sys.excepthook = exception_handler.handle_exception

    if args.save_defaults:
        settings = replace(settings, default_options=build_options(args, settings.default_options))
        if settings_manager.save(settings):
            logger.info(f"Saved default options to {settings_manager.settings_path}")

    return run(args, settings)


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == '__main__':
    sys.exit(main())
