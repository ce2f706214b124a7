"""Command-line interface for contextor."""
import logging
import os
import re
import sys
from typing import List, Optional, Sequence

import click
from rich.markup import escape

from .core.analyzer import ContextAnalyzer
from .core.formatter import get_available_formats
from .core.models import (
    DEFAULT_TOKENIZER,
    TOKENIZER_OPTIONS,
    Config,
    ContextResult,
    FileNode,
    get_tokenizer_description,
)
from .core.filters import TOTAL_TOKEN_THRESHOLD
from .utils.console import ConsoleManager, get_theme_names

# Characters with meaning in gitignore patterns
_PATTERN_SPECIALS = re.compile(r"([\\\[\]*?!#])")


def setup_logging(debug: bool) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else logging.WARNING
    format_string = '[%(levelname)s] %(message)s'

    logging.basicConfig(
        level=level,
        format=format_string,
        handlers=[logging.StreamHandler(sys.stderr)]
    )

    # Reduce noise from external libraries
    logging.getLogger("transformers").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("huggingface_hub").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)


def output_ignore_patterns(output: Optional[str], roots: Sequence[str]) -> List[str]:
    """Anchored patterns that keep a previous run's output file out of the scan."""
    if not output:
        return []
    output_path = os.path.abspath(output)
    patterns = []
    for root in roots or [os.getcwd()]:
        root_path = os.path.abspath(root)
        if not os.path.isdir(root_path):
            continue
        relative = os.path.relpath(output_path, root_path)
        if not relative.startswith(os.pardir):
            relative = _PATTERN_SPECIALS.sub(r"\\\1", relative.replace(os.sep, "/"))
            patterns.append("/" + relative)
    return patterns


def print_removed(console: ConsoleManager, title: str, nodes: Sequence[FileNode]) -> None:
    if not nodes:
        return
    console.print(f"\n[heading]{title}[/heading]")
    for node in nodes:
        console.print(f"  [dim]-[/dim] [path]{escape(node.path)}[/path] ([number]{node.token_count or 0:,}[/number] tokens)")


def print_summary(console: ConsoleManager, result: ContextResult, config: Config) -> None:
    """Print the post-filter summary for one run."""
    console.print()
    console.print_metric("Detected language", result.detected_language)
    console.print_metric("Tokenizer", f"{config.tokenizer} ({get_tokenizer_description(config.tokenizer)})")

    if not config.disable_language_filter:
        print_removed(console, "Files removed by language-specific filter:", result.removed.language_specific)
    if not config.disable_config_filter:
        print_removed(console, "Configuration files removed:", result.removed.configuration_files)
    if not config.disable_token_filter:
        if result.removed.token_anomaly:
            print_removed(console, "Files removed due to token count anomaly:", result.removed.token_anomaly)
        elif result.token_filter_applied:
            console.print_info(
                "No files were removed by token count anomaly filter, "
                f"despite total tokens exceeding {TOTAL_TOKEN_THRESHOLD:,}."
            )
        else:
            console.print_info("Token count anomaly filter was not applied due to low total token count.")

    console.print()
    console.print_file_tree(result.files, title="Included files after filtering")

    console.print()
    console.print_metric("Files included", len(result.file_paths))
    console.print_metric("Tokens after filtering", result.total_tokens_after)
    if result.formatted_tokens is not None:
        console.print_success(
            f"{result.formatted_tokens:,} tokens total, including {result.token_overhead:,} "
            f"from {result.output_format.value} formatting."
        )
    else:
        console.print_warning("Formatted output could not be tokenized; overhead unknown.")

    budget = result.budget()
    if budget is not None:
        if result.exceeds_budget():
            console.print_warning(
                f"Output exceeds the token budget: {budget.used_tokens:,} / {budget.max_tokens:,} "
                f"({budget.usage_percentage:.1f}%)"
            )
        else:
            console.print_info(
                f"Token budget: {budget.used_tokens:,} / {budget.max_tokens:,} "
                f"({budget.usage_percentage:.1f}%)"
            )


def print_tokenizers(console: ConsoleManager) -> None:
    console.print("[heading]Available tokenizers:[/heading]")
    for model_id in TOKENIZER_OPTIONS:
        description = get_tokenizer_description(model_id)
        marker = " (default)" if model_id == DEFAULT_TOKENIZER else ""
        console.print(f"  [path]{model_id}[/path]{marker} [dim]- {description}[/dim]")


@click.command()
@click.argument('paths', nargs=-1, type=click.Path())
@click.option('--extensions', '-e', help='Comma-separated file extensions to include (e.g. py,js)')
@click.option('--ignore', '-i', 'ignore', help='Comma-separated gitignore-style patterns to exclude')
@click.option('--include-dot-files', help='Comma-separated dot-file patterns to re-include (e.g. .github/**)')
@click.option('--format', '-f', 'output_format', type=click.Choice(get_available_formats()),
              default=None, help='Output format (default: xml, or CONTEXTOR_FORMAT)')
@click.option('--tokenizer', '-t', default=None,
              help=f'Tokenizer model id (default: {DEFAULT_TOKENIZER}, or CONTEXTOR_TOKENIZER)')
@click.option('--flat', is_flag=True, help='Emit a flat file list instead of the nested tree')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write the document to a file instead of stdout')
@click.option('--max-tokens', '-m', type=int, help='Warn when the formatted document exceeds this many tokens')
@click.option('--disable-language-filter', is_flag=True, help='Disable language-specific file filtering')
@click.option('--disable-config-filter', is_flag=True, help='Disable configuration file filtering')
@click.option('--disable-token-filter', is_flag=True, help='Disable token count anomaly filtering')
@click.option('--report', is_flag=True, help='Print a token report for the included files')
@click.option('--list-tokenizers', is_flag=True, help='List known tokenizer ids and exit')
@click.option('--theme', type=click.Choice(get_theme_names()), default=None, help='Terminal color theme')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.version_option(package_name='contextor')
def main(paths: Sequence[str], extensions: Optional[str], ignore: Optional[str],
         include_dot_files: Optional[str], output_format: Optional[str], tokenizer: Optional[str],
         flat: bool, output: Optional[str], max_tokens: Optional[int],
         disable_language_filter: bool, disable_config_filter: bool, disable_token_filter: bool,
         report: bool, list_tokenizers: bool, theme: Optional[str], debug: bool) -> None:
    """
    Build an LLM-ready context document from source files.

    PATHS are files or directories; the current directory is used when
    none are given.

    Examples:

        contextor

        contextor src tests -e py --format json

        contextor . -i "docs/**" --include-dot-files ".github/**" -o context.xml
    """
    console = ConsoleManager(theme=theme)

    setup_logging(debug)

    if list_tokenizers:
        print_tokenizers(console)
        return

    try:
        overrides = {}
        if tokenizer:
            overrides['tokenizer'] = tokenizer
        if output_format:
            overrides['output_format'] = output_format

        config = Config(
            extensions=extensions,
            ignore_patterns=ignore,
            include_dot_files=include_dot_files,
            extra_ignore_patterns=output_ignore_patterns(output, paths),
            flat_output=flat,
            disable_language_filter=disable_language_filter,
            disable_config_filter=disable_config_filter,
            disable_token_filter=disable_token_filter,
            max_tokens=max_tokens,
            **overrides
        )

        analyzer = ContextAnalyzer(config, show_progress=console.console.is_terminal)

        files, errors = analyzer.scan(paths)
        console.print_file_tree(files, title="File structure before filtering")

        result = analyzer.process(files, root_paths=list(paths) or [os.getcwd()], errors=errors)
        console.print()
        console.print_metric("Total tokens before filtering", result.total_tokens_before)

        print_summary(console, result, config)

        if report:
            console.print()
            console.print(analyzer.generate_token_report(result), markup=False)

        if output:
            output_path = analyzer.save_results(result, output)
            console.print_success(f"Output written to {os.path.relpath(output_path)}")
        else:
            click.echo(result.output)

        if result.has_errors():
            console.print_warning(f"Warnings detected: {len(result.errors)}")
            if debug:
                console.print(result.get_error_summary(), markup=False)

    except KeyboardInterrupt:
        console.print_error("Process terminated by user")
        sys.exit(1)

    except ValueError as e:
        console.print_error(str(e))
        sys.exit(1)

    except Exception as e:
        console.print_error(f"An error occurred: {e}")
        if debug:
            console.print_exception()
        sys.exit(1)


if __name__ == '__main__':
    main()
