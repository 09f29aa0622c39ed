"""CLI entry point for harwise."""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

import click

from harwise.compare import (
    DEFAULT_SIZE_THRESHOLD_PCT,
    DEFAULT_TIME_THRESHOLD_PCT,
    compare_samples,
    render_markdown,
)
from harwise.generator.config import load_config
from harwise.generator.curl import render_curl_suite
from harwise.generator.insomnia import render_insomnia
from harwise.generator.suite import SuiteGenerator
from harwise.parser.base import Sample
from harwise.parser.har import parse_har_file
from harwise.runner.context import VARS_FILE_NAME, TestContext, load_environ, load_variables
from harwise.runner.runner import TestRunner
from harwise.stats import render_stats, summarize

EXIT_REGRESSION = 2
EXIT_COMPARE_ERROR = 3


@dataclass
class GlobalOptions:
    include: str | None = None
    exclude: str | None = None
    template: bool = True
    mask_headers: list[str] | None = None
    base_url: str = ""


def _parse(har_path: Path, opts: GlobalOptions) -> list[Sample]:
    return parse_har_file(
        har_path, include=opts.include, exclude=opts.exclude, template=opts.template
    )


def _fail(message: str, error: Exception, code: int = 1):
    click.echo(f"{message}: {error}", err=True)
    sys.exit(code)


@click.group()
@click.option("--include", default=None, help="Only keep requests whose URL matches this regex.")
@click.option("--exclude", default=None, help="Drop requests whose URL matches this regex.")
@click.option("--template/--no-template", default=True, help="Match and key on templated URLs ({id}, {uuid}).")
@click.option("--mask-headers", default=None, help="Comma-separated request headers to leave out of generated output.")
@click.option("--base-url", default="", help="Base URL that generated requests are sent to.")
@click.option("-v", "--verbose", is_flag=True, help="Log progress to stderr.")
@click.pass_context
def main(ctx, include, exclude, template, mask_headers, base_url, verbose):
    """harwise: normalize HAR captures, compare them, generate and run API tests."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    masks = [h.strip().lower() for h in mask_headers.split(",") if h.strip()] if mask_headers else None
    ctx.obj = GlobalOptions(
        include=include,
        exclude=exclude,
        template=template,
        mask_headers=masks,
        base_url=base_url,
    )


@main.command()
@click.argument("har_path", type=click.Path(path_type=Path))
@click.pass_obj
def stats(opts: GlobalOptions, har_path: Path):
    """Quick summary of a HAR file."""
    try:
        samples = _parse(har_path, opts)
    except Exception as e:
        _fail("Error reading HAR file", e)
    click.echo(render_stats(summarize(samples), str(har_path)))


@main.command()
@click.argument("baseline_har", type=click.Path(path_type=Path))
@click.argument("new_har", type=click.Path(path_type=Path))
@click.option("--time-regress", default=DEFAULT_TIME_THRESHOLD_PCT, type=float, show_default=True, help="Latency regression threshold in percent.")
@click.option("--size-regress", default=DEFAULT_SIZE_THRESHOLD_PCT, type=float, show_default=True, help="Size regression threshold in percent.")
@click.option("--out", type=click.Path(path_type=Path), default=None, help="Write the Markdown report to this file.")
@click.pass_obj
def compare(opts: GlobalOptions, baseline_har: Path, new_har: Path, time_regress: float, size_regress: float, out: Path | None):
    """Compare two HAR files for regressions."""
    try:
        report = compare_samples(
            _parse(baseline_har, opts),
            _parse(new_har, opts),
            time_threshold_pct=time_regress,
            size_threshold_pct=size_regress,
        )
        markdown = render_markdown(report, str(baseline_har), str(new_har))
        if out:
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(markdown, encoding="utf-8")
            click.echo(f"Comparison report saved to {out}")
        else:
            click.echo(markdown)
    except Exception as e:
        _fail("Error comparing HAR files", e, EXIT_COMPARE_ERROR)

    if report.has_regression:
        click.echo(f"\n⚠️  {len(report.regressions)} regressions detected!")
        sys.exit(EXIT_REGRESSION)
    click.echo("\n✅ No regressions detected.")


@main.group()
def gen():
    """Generate tests and request collections from a HAR file."""
    pass


@gen.command("tests")
@click.argument("har_path", type=click.Path(path_type=Path))
@click.option("--out", "output", default="tests", type=click.Path(path_type=Path), show_default=True, help="Output directory for the generated suite.")
@click.option("--config", "config_path", default=None, type=click.Path(path_type=Path), help="YAML or JSON test config.")
@click.option("--export-pytest", is_flag=True, help="Also write standalone pytest files.")
@click.pass_obj
def gen_tests(opts: GlobalOptions, har_path: Path, output: Path, config_path: Path | None, export_pytest: bool):
    """Generate functional regression tests."""
    try:
        samples = _parse(har_path, opts)
        overrides = {}
        if opts.base_url:
            overrides["baseUrl"] = opts.base_url
        if opts.mask_headers is not None:
            overrides["maskHeaders"] = opts.mask_headers
        generator = SuiteGenerator(load_config(config_path, overrides))
        manifest = generator.write(samples, output, export_pytest=export_pytest)
    except Exception as e:
        _fail("Error generating tests", e)
    click.echo(f"Generated {len(manifest.tests)} test files in {output}")


@gen.command("curl")
@click.argument("har_path", type=click.Path(path_type=Path))
@click.option("--out", "output", default="suite.sh", type=click.Path(path_type=Path), show_default=True, help="Output shell script.")
@click.option("--strict", is_flag=True, help="Add 'set -euo pipefail' to the script.")
@click.pass_obj
def gen_curl(opts: GlobalOptions, har_path: Path, output: Path, strict: bool):
    """Generate a curl suite."""
    try:
        script = render_curl_suite(
            _parse(har_path, opts),
            strict=strict,
            mask_headers=opts.mask_headers,
            base_url=opts.base_url,
        )
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(script, encoding="utf-8")
    except Exception as e:
        _fail("Error generating curl suite", e)
    click.echo(f"Curl suite saved to {output}")


@gen.command("insomnia")
@click.argument("har_path", type=click.Path(path_type=Path))
@click.option("--out", "output", default=None, type=click.Path(path_type=Path), help="Output file (stdout when omitted).")
@click.pass_obj
def gen_insomnia(opts: GlobalOptions, har_path: Path, output: Path | None):
    """Generate an Insomnia collection."""
    try:
        collection = render_insomnia(
            _parse(har_path, opts),
            base_url=opts.base_url,
            mask_headers=opts.mask_headers,
        )
        if output:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(collection, encoding="utf-8")
    except Exception as e:
        _fail("Error generating Insomnia collection", e)
    click.echo(f"Insomnia collection saved to {output}" if output else collection)


@main.command("test")
@click.option("--tests", "tests_dir", default="tests", type=click.Path(path_type=Path), show_default=True, help="Directory holding the generated suite.")
@click.option("--env", "env_file", default=".env", type=click.Path(path_type=Path), show_default=True, help="Dotenv file with fallback variables.")
@click.option("--timeout", default=None, type=float, help="Per-request timeout in seconds.")
def run_tests(tests_dir: Path, env_file: Path, timeout: float | None):
    """Run generated functional tests."""
    try:
        context = TestContext(
            variables=load_variables(tests_dir / VARS_FILE_NAME),
            environ=load_environ(env_file),
        )
        runner = TestRunner(context=context, timeout=timeout)
        results = runner.run(tests_dir)
    except Exception as e:
        _fail("Error running tests", e)

    summary = runner.summary()
    click.echo("Test Results:")
    click.echo(f"Total: {summary.total}")
    click.echo(f"Passed: {summary.passed}")
    click.echo(f"Failed: {summary.failed}")
    click.echo(f"Total Time: {summary.total_time:.0f}ms")
    click.echo(f"Average Time: {summary.avg_time}ms")
    click.echo(f"P50: {summary.p50:.0f}ms")
    click.echo(f"P95: {summary.p95:.0f}ms")

    if summary.failed:
        click.echo("\nFailed tests:")
        for result in results:
            if result.status == "fail":
                click.echo(f"- {result.name}: {result.error}")
        sys.exit(1)
